from __future__ import annotations

from ..extensions import db


class Setting(db.Model):
    """
    Key/value application setting (e.g. "tax_rate" -> "8.0").

    Values are stored as text; the record store converts them.
    """
    __tablename__ = "settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
