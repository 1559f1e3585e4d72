from __future__ import annotations

from ..extensions import db


class User(db.Model):
    """
    Stored user accounts (salesmen, and any extra office accounts).

    The two fixed accounts (office administrator and IT administrator) are
    not rows here: they come from configuration at startup.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        db.Index("ix_users_username", "username"),
    )

    id = db.Column(db.String(36), primary_key=True)
    username = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=False, default="")
    role = db.Column(db.String(16), nullable=False, default="salesman")

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
