# backend/fireforce/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fireforce.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fireforce.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "remote" = relational tables, "local" = JSON blobs under LOCAL_STORE_DIR.
    # The local store is always present: it is the fallback for a failed remote
    # load and holds the backup scheduler's keys.
    RECORD_STORE = os.environ.get("RECORD_STORE", "remote")
    LOCAL_STORE_DIR = os.environ.get("LOCAL_STORE_DIR", "local_store")

    SYSTEM_NAME = "Fire Force Invoice System"
    DEFAULT_TAX_RATE = float(os.environ.get("DEFAULT_TAX_RATE", "8.0"))

    # Fixed office identity, restored from here and never from a snapshot
    OFFICE_COMPANY_NAME = os.environ.get("OFFICE_COMPANY_NAME", "Fire Force")
    OFFICE_ADDRESS = os.environ.get("OFFICE_ADDRESS", "P.O. Box 552, Columbiana Ohio 44408")
    OFFICE_PHONE = os.environ.get("OFFICE_PHONE", "330-482-9300")
    OFFICE_EMERGENCY_PHONE = os.environ.get("OFFICE_EMERGENCY_PHONE", "724-586-6577")
    OFFICE_EMAIL = os.environ.get("OFFICE_EMAIL", "Lizfireforce@yahoo.com")
    OFFICE_SERVICE_EMAIL = os.environ.get("OFFICE_SERVICE_EMAIL", "fireforcebutler@gmail.com")

    # Fixed accounts. Passwords have no default: an account without a configured
    # password cannot log in.
    OFFICE_USERNAME = os.environ.get("OFFICE_USERNAME", "ffoffice1")
    OFFICE_PASSWORD = os.environ.get("OFFICE_PASSWORD")
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "itadmin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")

    # Credential given to every salesman re-created by a restore
    RESTORE_DEFAULT_PASSWORD = os.environ.get("RESTORE_DEFAULT_PASSWORD", "ChangeMe123!")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    SESSION_MAX_AGE_SECONDS = int(os.environ.get("SESSION_MAX_AGE_SECONDS", str(24 * 60 * 60)))

    BACKUP_DIR = os.environ.get("BACKUP_DIR", "backups")
    BACKUP_FILE_PREFIX = os.environ.get("BACKUP_FILE_PREFIX", "fireforce_backup")
    AUTO_BACKUP_KEEP = int(os.environ.get("AUTO_BACKUP_KEEP", "5"))
    BACKUP_SCHEDULER_ENABLED = _env_bool("BACKUP_SCHEDULER_ENABLED", True)
    BACKUP_CHECK_INTERVAL_SECONDS = int(os.environ.get("BACKUP_CHECK_INTERVAL_SECONDS", "3600"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser origins allowed to call the API (comma separated)
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        ).split(",")
        if origin.strip()
    ]
