from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..time_utils import to_utc_z

# Below this many units a product is flagged for restocking
LOW_STOCK_THRESHOLD = Decimal("10")

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_INITIAL = "INITIAL"
MOVEMENT_KINDS = (MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_INITIAL)


def _num(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class Product(db.Model):
    """
    Product master data.

    Stock is never stored as a single mutable quantity. It is derived from
    three counters: current_stock = initial_stock + cumulative_in - cumulative_out.
    The counters are only moved by stock_service (atomic SQL increments), each
    move paired with a StockMovement row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    packaging = db.Column(db.String(64), nullable=False, default="Band. 200m")

    initial_stock = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))
    cumulative_in = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))
    cumulative_out = db.Column(db.Numeric(12, 3), nullable=False, default=Decimal("0"))

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @hybrid_property
    def current_stock(self):
        return (self.initial_stock or 0) + (self.cumulative_in or 0) - (self.cumulative_out or 0)

    @current_stock.expression
    def current_stock(cls):
        return cls.initial_stock + cls.cumulative_in - cls.cumulative_out

    @property
    def low_stock(self) -> bool:
        return self.current_stock < LOW_STOCK_THRESHOLD

    @property
    def stock_value(self) -> Decimal:
        return self.current_stock * (self.unit_price or 0)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit_price": _num(self.unit_price),
            "packaging": self.packaging,
            "initial_stock": _num(self.initial_stock),
            "cumulative_in": _num(self.cumulative_in),
            "cumulative_out": _num(self.cumulative_out),
            "current_stock": _num(self.current_stock),
            "low_stock": self.low_stock,
            "stock_value": _num(self.stock_value),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit trail of stock changes.

    Rows are written in the same DB transaction as the counter update they
    describe and are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Plain id, no FK: the history outlives a deleted product
    product_id = db.Column(db.Integer, nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False, index=True)  # IN, OUT, INITIAL
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Set when the movement is a side effect of a sale (creation or cancellation)
    sale_id = db.Column(db.Integer, nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "kind": self.kind,
            "quantity": _num(self.quantity),
            "occurred_at": to_utc_z(self.occurred_at),
            "sale_id": self.sale_id,
            "note": self.note,
        }
