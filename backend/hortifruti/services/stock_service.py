# Overview: Service-layer operations for stock accounting; encapsulates business logic and database work.

"""
Stock accounting invariants (authoritative)

- current_stock = initial_stock + cumulative_in - cumulative_out, always.
- Counters are only moved here, and only with single-statement SQL increments
  (UPDATE ... SET col = col + :q). No read-modify-write in Python.
- Every counter move appends a StockMovement row in the same DB transaction.
- An OUT move is guarded in SQL (WHERE current_stock >= :q). Two concurrent
  sales against the same product cannot both pass the check, whatever the
  isolation level.

Functions here never commit. Callers own the transaction boundary.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_INITIAL
from ..time_utils import utcnow
from ..validation import to_decimal
from .concurrency import lock_for_update

MANUAL_MOVEMENT_KINDS = (MOVEMENT_IN, MOVEMENT_OUT)


def _require_positive(quantity) -> Decimal:
    qty = to_decimal(quantity, "quantity")
    if qty <= 0:
        raise ValidationError("quantity must be greater than zero")
    return qty


def get_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})
    return product


def get_current_stock(product_id: int) -> Decimal:
    """Read current stock straight from the counters (bypasses the identity map)."""
    value = db.session.query(Product.current_stock).filter(Product.id == product_id).scalar()
    if value is None:
        raise NotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})
    return Decimal(value)


def record_movement(
    product_id: int,
    kind: str,
    quantity: Decimal,
    *,
    sale_id: int | None = None,
    note: str | None = None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product_id,
        kind=kind,
        quantity=quantity,
        occurred_at=utcnow(),
        sale_id=sale_id,
        note=note,
    )
    db.session.add(movement)
    return movement


def add_stock_in(product_id: int, quantity, *, sale_id: int | None = None, note: str | None = None) -> StockMovement:
    """Increment cumulative_in and log an IN movement."""
    qty = _require_positive(quantity)

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(cumulative_in=Product.cumulative_in + qty)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})

    return record_movement(product_id, MOVEMENT_IN, qty, sale_id=sale_id, note=note)


def add_stock_out(product_id: int, quantity, *, sale_id: int | None = None, note: str | None = None) -> StockMovement:
    """
    Increment cumulative_out and log an OUT movement.

    The increment only applies while enough stock remains; a zero rowcount
    means the product is gone or stock ran short (possibly to a concurrent
    movement committed after our read).
    """
    qty = _require_positive(quantity)

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.current_stock >= qty)
        .values(cumulative_out=Product.cumulative_out + qty)
    )
    if result.rowcount == 0:
        product = get_product(product_id)
        raise InsufficientStockError(
            f"Insufficient stock for product: {product.name}",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "requested_quantity": float(qty),
                "current_stock": float(product.current_stock),
            },
        )

    return record_movement(product_id, MOVEMENT_OUT, qty, sale_id=sale_id, note=note)


def release_stock_out(product_id: int, quantity, *, sale_id: int | None = None, note: str | None = None) -> StockMovement:
    """
    Hand back stock previously taken by add_stock_out.

    Decrements cumulative_out (it never goes below zero) and logs a
    compensating IN movement.
    """
    qty = _require_positive(quantity)

    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.cumulative_out >= qty)
        .values(cumulative_out=Product.cumulative_out - qty)
    )
    if result.rowcount == 0:
        product = get_product(product_id)
        raise ValidationError(
            f"Cannot return more than was taken out for product: {product.name}",
            details={"product_id": product.id, "quantity": float(qty)},
        )

    return record_movement(product_id, MOVEMENT_IN, qty, sale_id=sale_id, note=note)


def record_initial_stock(product: Product) -> StockMovement | None:
    if product.initial_stock and product.initial_stock > 0:
        return record_movement(product.id, MOVEMENT_INITIAL, product.initial_stock, note="Initial stock")
    return None


def register_movement(product_id: int, kind: str, quantity) -> Product:
    """
    Manual stock movement (goods received / manual write-off).

    kind is IN or OUT. Commits on success, rolls back on any failure.
    """
    kind = (kind or "").strip().upper()
    if kind not in MANUAL_MOVEMENT_KINDS:
        raise ValidationError("kind must be IN or OUT")

    try:
        get_product(product_id, lock=True)
        if kind == MOVEMENT_IN:
            movement = add_stock_in(product_id, quantity, note="Manual entry")
        else:
            movement = add_stock_out(product_id, quantity, note="Manual exit")
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Stock movement %s product_id=%s quantity=%s", kind, product_id, movement.quantity
    )
    product = db.session.get(Product, product_id)
    db.session.refresh(product)
    return product


def list_movements(product_id: int, limit: int | None = None) -> list[StockMovement]:
    get_product(product_id)
    query = (
        db.session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()
