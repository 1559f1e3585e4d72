# Overview: Flask extension instances for database and migrations, plus the per-app service bundle.

from dataclasses import dataclass, field
from typing import Any

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

EXTENSION_KEY = "fireforce"


@dataclass
class ServiceBundle:
    """Service instances built once per app in create_app()."""
    data: Any
    local_store: Any
    exporter: Any
    scheduler: Any
    restorer: Any
    fixed_accounts: list = field(default_factory=list)
    last_reminder: dict | None = None


def services() -> ServiceBundle:
    return current_app.extensions[EXTENSION_KEY]
