# backend/hortifruti/services/products_service.py
"""
Products Service

Product CRUD plus stock statistics. Stock counters are owned by
stock_service; this module only sets initial_stock and never touches
cumulative_in / cumulative_out.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..errors import ConflictError
from ..extensions import db
from ..models import Product, SaleItem
from ..models.inventory import LOW_STOCK_THRESHOLD
from . import stock_service

# initial_stock is fixed at creation; later stock changes go through movements
PRODUCT_CREATE_FIELDS = {"name", "unit_price", "packaging", "initial_stock"}
PRODUCT_MUTABLE_FIELDS = {"name", "unit_price", "packaging"}


def apply_product_patch(p: Product, patch: dict, allowed: set[str] = PRODUCT_MUTABLE_FIELDS) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(p, k, v)


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def list_low_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.current_stock < LOW_STOCK_THRESHOLD)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )


def create_product(*, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    A positive initial_stock is logged as an INITIAL stock movement.
    """
    product = Product(
        cumulative_in=Decimal("0"),
        cumulative_out=Decimal("0"),
        initial_stock=Decimal("0"),
    )
    apply_product_patch(product, patch, PRODUCT_CREATE_FIELDS)

    try:
        db.session.add(product)
        db.session.flush()
        stock_service.record_initial_stock(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return product


def update_product(product_id: int, patch: dict) -> Product | None:
    product = db.session.get(Product, product_id)
    if product is None:
        return None

    apply_product_patch(product, patch)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return product


def delete_product(product_id: int) -> bool:
    """
    Delete a product that was never sold.

    Raises ConflictError when sale items reference it. Its movement history
    stays in place.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        return False

    in_use = db.session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first()
    if in_use:
        raise ConflictError("Product is referenced by sales and cannot be deleted")

    try:
        db.session.delete(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return True


def get_statistics() -> dict:
    totals = db.session.query(
        func.count(Product.id),
        func.coalesce(func.sum(Product.initial_stock), 0),
        func.coalesce(func.sum(Product.cumulative_in), 0),
        func.coalesce(func.sum(Product.cumulative_out), 0),
    ).one()

    products = list_products()
    total_value = sum((p.stock_value for p in products), Decimal("0"))
    low_stock_count = sum(1 for p in products if p.low_stock)

    count, initial, entries, exits = totals
    current = Decimal(str(initial)) + Decimal(str(entries)) - Decimal(str(exits))

    return {
        "total_products": int(count),
        "total_initial_stock": float(initial),
        "total_in": float(entries),
        "total_out": float(exits),
        "total_current_stock": float(current),
        "total_stock_value": float(total_value),
        "low_stock_products": low_stock_count,
    }
