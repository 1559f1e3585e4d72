from __future__ import annotations

from ..extensions import db


class Invoice(db.Model):
    """
    Invoice, service order or quote header.

    Customer fields are a copy taken when the invoice was written, not a
    reference: editing or deleting the customer never changes them.
    Totals are recomputed by the service layer on every edit.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_status_archived", "status", "archived"),
        db.Index("ix_invoices_sales_rep", "sales_rep"),
    )

    id = db.Column(db.String(36), primary_key=True)
    date = db.Column(db.String(10), nullable=True)
    po_number = db.Column(db.String(64), nullable=False, default="")
    sales_rep = db.Column(db.String(128), nullable=False, default="")
    transaction_type = db.Column(db.String(32), nullable=False, default="Sales Order")

    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")
    customer_phone = db.Column(db.String(32), nullable=False, default="")
    accounts_payable_email = db.Column(db.String(255), nullable=False, default="")
    bill_to_address = db.Column(db.Text, nullable=False, default="")
    ship_to_address = db.Column(db.Text, nullable=False, default="")

    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    additional_info = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="pending")
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=8)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    grand_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class InvoiceItem(db.Model):
    """Line item owned by exactly one invoice; ordered by position."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.Index("ix_invoice_items_invoice_position", "invoice_id", "position"),
    )

    id = db.Column(db.String(36), primary_key=True)
    invoice_id = db.Column(db.String(36), db.ForeignKey("invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    mfg = db.Column(db.String(128), nullable=False, default="")
    part_number = db.Column(db.String(128), nullable=False, default="")
    description = db.Column(db.Text, nullable=False, default="")
    qty = db.Column(db.Integer, nullable=False, default=0)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    taxable = db.Column(db.Boolean, nullable=False, default=True)
