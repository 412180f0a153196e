from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .inventory import _num

SALE_PENDING = "PENDING"
SALE_FINALIZED = "FINALIZED"
SALE_CANCELLED = "CANCELLED"
SALE_STATUSES = (SALE_PENDING, SALE_FINALIZED, SALE_CANCELLED)


class Sale(db.Model):
    """
    Sale transaction.

    Lifecycle: PENDING -> FINALIZED or PENDING -> CANCELLED. Both targets are
    terminal. Stock is taken at creation time and handed back on cancel.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "VND20240101123045123456AB12")
    sale_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    delivery_address_id = db.Column(db.Integer, db.ForeignKey("addresses.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SALE_PENDING, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(10, 2), nullable=False)

    # Only set at finalization
    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    delivery_address = db.relationship("Address")
    items = db.relationship(
        "SaleItem",
        backref=db.backref("sale", lazy=True),
        cascade="all, delete-orphan",
        lazy=True,
        order_by="SaleItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "delivery_address": self.delivery_address.to_dict() if self.delivery_address else None,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "finalized_at": to_utc_z(self.finalized_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "total_amount": _num(self.total_amount),
            "discount": _num(self.discount),
            "final_amount": _num(self.final_amount),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
        }


class SaleItem(db.Model):
    """
    One product line of a sale.

    unit_price is a snapshot of the product price at creation time and is
    never recalculated. item_total mirrors subtotal (legacy NOT NULL column).
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    item_total = db.Column(db.Numeric(10, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": _num(self.quantity),
            "unit_price": _num(self.unit_price),
            "subtotal": _num(self.subtotal),
            "item_total": _num(self.item_total),
        }
