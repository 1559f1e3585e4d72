# Overview: Service-layer operations for auth; password hashing, fixed accounts and bearer tokens.

"""
Authentication Service

Uses bcrypt for password hashing. Two accounts are fixed by configuration
rather than stored: the office administrator and the IT administrator. The
IT administrator is an office account with the administrative scope
(isAdmin) instead of a hard-coded override login.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Fixed-account passwords come from OFFICE_PASSWORD / ADMIN_PASSWORD; an
  account without one cannot log in
- Bearer tokens are signed (itsdangerous) and expire after
  SESSION_MAX_AGE_SECONDS
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .record_schemas import ROLE_OFFICE


logger = logging.getLogger(__name__)

TOKEN_SALT = "fireforce-session"
OFFICE_ACCOUNT_ID = "office1"
ADMIN_ACCOUNT_ID = "it_admin"


class AuthenticationError(Exception):
    """Raised when credentials or a token are rejected."""


@dataclass(frozen=True)
class FixedAccount:
    id: str
    username: str
    name: str
    role: str
    is_admin: bool
    password_hash: str | None

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "isAdmin": self.is_admin,
            "fixed": True,
        }


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt; stored as a string."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Anything that is not a bcrypt hash
    (including legacy plaintext values) never matches.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def build_fixed_accounts(config: Mapping) -> list[FixedAccount]:
    rounds = int(config.get("BCRYPT_ROUNDS", 12))
    accounts = []
    for account_id, name, is_admin, user_key, password_key in (
        (OFFICE_ACCOUNT_ID, "Office Administrator", False, "OFFICE_USERNAME", "OFFICE_PASSWORD"),
        (ADMIN_ACCOUNT_ID, "IT Administrator", True, "ADMIN_USERNAME", "ADMIN_PASSWORD"),
    ):
        username = config.get(user_key)
        if not username:
            continue
        password = config.get(password_key)
        if not password:
            logger.warning("%s is not set; fixed account %s cannot log in", password_key, username)
        accounts.append(
            FixedAccount(
                id=account_id,
                username=username,
                name=name,
                role=ROLE_OFFICE,
                is_admin=is_admin,
                password_hash=hash_password(password, rounds=rounds) if password else None,
            )
        )
    return accounts


def public_user(record: Mapping) -> dict:
    return {
        "id": record["id"],
        "username": record.get("username"),
        "name": record.get("name"),
        "role": record.get("role"),
        "isAdmin": False,
        "fixed": False,
    }


def authenticate(
    username: str,
    password: str,
    *,
    fixed_accounts: Iterable[FixedAccount],
    users: Iterable[Mapping],
) -> dict:
    """
    Check credentials against the fixed accounts first, then stored users.

    Returns the public user dict; raises AuthenticationError otherwise.
    """
    if not username or not password:
        raise AuthenticationError("Username and password are required")

    for account in fixed_accounts:
        if account.username == username:
            if verify_password(password, account.password_hash):
                return account.to_public()
            raise AuthenticationError("Invalid credentials")

    for user in users:
        if user.get("username") == username and verify_password(password, user.get("passwordHash")):
            return public_user(user)

    raise AuthenticationError("Invalid credentials")


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def issue_token(user: Mapping, secret_key: str) -> str:
    return _serializer(secret_key).dumps({"id": user["id"], "role": user["role"]})


def load_token(token: str, secret_key: str, *, max_age: int) -> dict:
    """Return the signed claims; raises AuthenticationError when invalid or expired."""
    try:
        return _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthenticationError("Token expired")
    except BadSignature:
        raise AuthenticationError("Invalid token")
