from __future__ import annotations

from ..extensions import db
from ..money import money_json
from paint_erp.time_utils import to_utc_z

INVOICE_STATUSES = ("pending", "completed", "cancelled")


class Invoice(db.Model):
    """
    Sales invoice generated from a billing cart.

    Invoices are immutable once written. Line items snapshot the product name
    and unit price so later catalog edits never change a past invoice.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_no", name="uq_invoices_invoice_no"),
        # Owner listing, newest first
        db.Index("ix_invoices_user_created", "user_id", "created_at"),
        db.CheckConstraint(
            "status IN ('pending', 'completed', 'cancelled')",
            name="ck_invoices_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "INV-1718000000000-42"
    invoice_no = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Amounts are kept unrounded: 2dp subtotal x 3dp rate / 100 needs 7dp.
    subtotal = db.Column(db.Numeric(14, 2), nullable=False)
    tax = db.Column(db.Numeric(18, 7), nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(6, 3), nullable=False, default=18)
    total = db.Column(db.Numeric(18, 7), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("invoices", lazy=True))
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} invoice_no={self.invoice_no!r} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoiceNo": self.invoice_no,
            "user": self.user.to_summary() if self.user else self.user_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal": money_json(self.subtotal),
            "tax": money_json(self.tax),
            "taxRate": money_json(self.tax_rate),
            "total": money_json(self.total),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }


class InvoiceItem(db.Model):
    """One cart line on an invoice, in cart order."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Snapshots taken at billing time
    product_name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.String(8), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_summary() if self.product else self.product_id,
            "productName": self.product_name,
            "size": self.size,
            "quantity": self.quantity,
            "price": money_json(self.price),
            "total": money_json(self.line_total),
        }
