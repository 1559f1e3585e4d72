# backend/fireforce/__init__.py
from functools import partial

from flask import Flask, request

from .config import Config
from .extensions import EXTENSION_KEY, ServiceBundle, db, migrate


def _office_info(config) -> dict:
    return {
        "companyName": config["OFFICE_COMPANY_NAME"],
        "address": config["OFFICE_ADDRESS"],
        "phone": config["OFFICE_PHONE"],
        "emergencyPhone": config["OFFICE_EMERGENCY_PHONE"],
        "email": config["OFFICE_EMAIL"],
        "serviceEmail": config["OFFICE_SERVICE_EMAIL"],
        "username": config["OFFICE_USERNAME"],
    }


def _init_services(app: Flask) -> ServiceBundle:
    from .services.auth_service import build_fixed_accounts, hash_password
    from .services.backup_export import BackupExporter
    from .services.backup_scheduler import BackupScheduler, backup_reminder_due
    from .services.data_service import DataService
    from .services.restore_service import RestoreOrchestrator
    from .store import LocalRecordStore, SqlRecordStore
    from .time_utils import utcnow

    config = app.config
    office_info = _office_info(config)

    # The local store always exists: fallback data and scheduler state
    local_store = LocalRecordStore(config["LOCAL_STORE_DIR"])
    backend = config["RECORD_STORE"]
    if backend == "remote":
        primary_store = SqlRecordStore()
    elif backend == "local":
        primary_store = local_store
    else:
        raise ValueError(f"RECORD_STORE must be 'remote' or 'local', not {backend!r}")

    fixed_accounts = build_fixed_accounts(config)
    hasher = partial(hash_password, rounds=config["BCRYPT_ROUNDS"])

    data = DataService(
        primary_store,
        local_store,
        default_tax_rate=config["DEFAULT_TAX_RATE"],
        office_info=office_info,
        fixed_accounts=fixed_accounts,
        password_hasher=hasher,
    )

    def run_automatic_backup():
        with app.app_context():
            with data.lock:
                data.load_all_data()
                collections = data.collections()
            path = exporter.write_automatic_backup(
                collections,
                config["BACKUP_DIR"],
                keep=config["AUTO_BACKUP_KEEP"],
            )
            app.logger.info("Automatic backup written to %s", path)

    scheduler = BackupScheduler(
        local_store,
        check_interval=config["BACKUP_CHECK_INTERVAL_SECONDS"],
        backup_runner=run_automatic_backup,
    )
    exporter = BackupExporter(
        scheduler,
        system_name=config["SYSTEM_NAME"],
        office_info=office_info,
        file_prefix=config["BACKUP_FILE_PREFIX"],
    )
    restorer = RestoreOrchestrator(
        data,
        hash_password=hasher,
        default_password=config["RESTORE_DEFAULT_PASSWORD"],
        validator_options={"system_name": config["SYSTEM_NAME"], "office_info": office_info},
        # A restored data set counts as backed up
        on_complete=lambda: scheduler.record_backup(utcnow()),
    )

    bundle = ServiceBundle(
        data=data,
        local_store=local_store,
        exporter=exporter,
        scheduler=scheduler,
        restorer=restorer,
        fixed_accounts=fixed_accounts,
    )

    def remember_reminder(sender, **payload):
        bundle.last_reminder = payload
        app.logger.info("Backup reminder: %s", payload["message"])

    backup_reminder_due.connect(remember_reminder, sender=scheduler, weak=False)
    app.extensions[EXTENSION_KEY] = bundle
    return bundle


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    bundle = _init_services(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.invoices import invoices_bp
    from .routes.customers import customers_bp
    from .routes.users import users_bp
    from .routes.settings import settings_bp
    from .routes.stats import stats_bp
    from .routes.backups import backups_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(backups_bp)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    if app.config["BACKUP_SCHEDULER_ENABLED"] and not app.testing:
        bundle.scheduler.start()

    return app
