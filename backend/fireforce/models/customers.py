from __future__ import annotations

from ..extensions import db


class Customer(db.Model):
    """
    Customer master data used to pre-fill invoices.

    Independent lifecycle from invoices: invoices copy these fields at
    creation time.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=False, default="")
    accounts_payable_email = db.Column(db.String(255), nullable=False, default="")
    bill_to_address = db.Column(db.Text, nullable=False, default="")
    ship_to_address = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
