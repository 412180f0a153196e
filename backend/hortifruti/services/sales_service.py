"""
Sales Service - sale transaction workflow

A sale is created PENDING and takes its stock immediately. From PENDING it
either gets FINALIZED (payment method recorded, stock untouched) or
CANCELLED (stock handed back). Both are terminal.

Every mutation here runs in a single DB transaction: the sale, its items,
the counter updates and the stock movements commit together or not at all.
"""

from __future__ import annotations

import secrets
import string
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..errors import (
    ConflictError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Address, Customer, Product, Sale, SaleItem
from ..models.sales import SALE_CANCELLED, SALE_FINALIZED, SALE_PENDING, SALE_STATUSES
from ..time_utils import utcnow
from ..validation import to_decimal
from . import stock_service
from .concurrency import lock_for_update
from .customers_service import principal_address

SALE_NUMBER_PREFIX = "VND"
SALE_NUMBER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SALE_NUMBER_ATTEMPTS = 5

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def generate_sale_number() -> str:
    """VND + compact timestamp digits + 4 random uppercase alphanumerics."""
    stamp = utcnow().strftime("%Y%m%d%H%M%S%f")
    suffix = "".join(secrets.choice(SALE_NUMBER_SUFFIX_ALPHABET) for _ in range(4))
    return f"{SALE_NUMBER_PREFIX}{stamp}{suffix}"


def _next_sale_number() -> str:
    for _ in range(SALE_NUMBER_ATTEMPTS):
        number = generate_sale_number()
        taken = db.session.query(Sale.id).filter(Sale.sale_number == number).first()
        if not taken:
            return number
    raise ConflictError("Could not generate a unique sale number")


def _resolve_delivery_address(customer: Customer, address_id: int | None) -> Address | None:
    if address_id is None:
        return principal_address(customer.id)

    address = db.session.get(Address, address_id)
    if address is None:
        raise NotFoundError("Delivery address not found", details={"address_id": address_id})
    if address.customer_id != customer.id:
        raise ValidationError(
            "Delivery address does not belong to customer",
            details={"address_id": address_id, "customer_id": customer.id},
        )
    return address


def _normalize_items(items) -> list[tuple[int, Decimal]]:
    if not items:
        raise ValidationError("A sale must contain at least one item")

    normalized = []
    for raw in items:
        if isinstance(raw, dict):
            product_id, quantity = raw.get("product_id"), raw.get("quantity")
        elif isinstance(raw, (list, tuple)) and len(raw) == 2:
            product_id, quantity = raw
        else:
            raise ValidationError("Each item must be an object with product_id and quantity")

        if product_id is None or isinstance(product_id, bool):
            raise ValidationError("Each item requires a product_id")
        try:
            product_id = int(product_id)
        except (TypeError, ValueError):
            raise ValidationError("product_id must be an integer")

        if quantity is None:
            raise ValidationError("Each item requires a quantity")
        qty = to_decimal(quantity, "quantity")
        if qty <= 0:
            raise ValidationError("quantity must be greater than zero", details={"product_id": product_id})

        normalized.append((product_id, qty))
    return normalized


def _check_stock(products: dict[int, Product], items: list[tuple[int, Decimal]]) -> None:
    """Compare the summed request per product against current stock."""
    requested: OrderedDict[int, Decimal] = OrderedDict()
    for product_id, qty in items:
        requested[product_id] = requested.get(product_id, Decimal("0")) + qty

    for product_id, qty in requested.items():
        product = products[product_id]
        if product.current_stock < qty:
            raise InsufficientStockError(
                f"Insufficient stock for product: {product.name}",
                details={
                    "product_id": product.id,
                    "product_name": product.name,
                    "requested_quantity": float(qty),
                    "current_stock": float(product.current_stock),
                },
            )


def _create_sale_locked(
    customer_id: int,
    items,
    delivery_address_id: int | None,
    discount,
    notes: str | None,
) -> Sale:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})

    address = _resolve_delivery_address(customer, delivery_address_id)
    normalized = _normalize_items(items)

    products: dict[int, Product] = {}
    for product_id, _ in normalized:
        if product_id not in products:
            products[product_id] = stock_service.get_product(product_id, lock=True)

    _check_stock(products, normalized)

    sale_items = []
    total = Decimal("0")
    for product_id, qty in normalized:
        unit_price = products[product_id].unit_price
        subtotal = _money(unit_price * qty)
        sale_items.append(SaleItem(
            product_id=product_id,
            quantity=qty,
            unit_price=unit_price,
            subtotal=subtotal,
            item_total=subtotal,
        ))
        total += subtotal

    discount_value = Decimal("0") if discount is None else _money(to_decimal(discount, "discount"))
    if discount_value < 0:
        raise ValidationError("discount cannot be negative")
    if discount_value > total:
        raise ValidationError("discount cannot exceed the sale total")

    sale = Sale(
        sale_number=_next_sale_number(),
        customer_id=customer.id,
        delivery_address_id=address.id if address else None,
        status=SALE_PENDING,
        created_at=utcnow(),
        total_amount=_money(total),
        discount=discount_value,
        final_amount=_money(total - discount_value),
        notes=notes,
        items=sale_items,
    )
    db.session.add(sale)
    db.session.flush()

    for item in sale_items:
        stock_service.add_stock_out(
            item.product_id,
            item.quantity,
            sale_id=sale.id,
            note=f"Sale {sale.sale_number}",
        )

    return sale


def create_sale(
    customer_id: int,
    items,
    *,
    delivery_address_id: int | None = None,
    discount=None,
    notes: str | None = None,
) -> Sale:
    """
    Create a PENDING sale and take its stock.

    items: iterable of {"product_id": int, "quantity": number} dicts or
    (product_id, quantity) pairs. Unit prices are snapshot from the products.

    Without delivery_address_id the customer's principal address is used
    (if any). All-or-nothing: any failure rolls the whole transaction back.
    """
    try:
        sale = _create_sale_locked(customer_id, items, delivery_address_id, discount, notes)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s created for customer_id=%s total=%s items=%s",
        sale.sale_number, sale.customer_id, sale.final_amount, len(sale.items),
    )
    return sale


def _finalize_locked(sale: Sale, payment_method: str) -> Sale:
    if sale.status != SALE_PENDING:
        raise InvalidStateTransitionError(
            "Only pending sales can be finalized",
            details={"sale_id": sale.id, "status": sale.status},
        )

    sale.status = SALE_FINALIZED
    sale.payment_method = payment_method
    sale.finalized_at = utcnow()
    return sale


def _clean_payment_method(payment_method: str | None) -> str:
    value = (payment_method or "").strip()
    if not value:
        raise ValidationError("payment_method is required")
    if len(value) > 32:
        raise ValidationError("payment_method exceeds max length 32")
    return value


def finalize_sale(sale_id: int, payment_method: str) -> Sale:
    """PENDING -> FINALIZED. Records the payment method; stock is not touched."""
    method = _clean_payment_method(payment_method)
    try:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})
        _finalize_locked(sale, method)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s finalized (%s)", sale.sale_number, method)
    return sale


def finalize_sale_by_number(sale_number: str, payment_method: str) -> Sale:
    method = _clean_payment_method(payment_method)
    try:
        sale = lock_for_update(db.session.query(Sale).filter_by(sale_number=sale_number)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_number": sale_number})
        _finalize_locked(sale, method)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s finalized (%s)", sale.sale_number, method)
    return sale


def cancel_sale(sale_id: int) -> Sale:
    """
    PENDING -> CANCELLED. Returns every item's quantity to stock and logs a
    compensating IN movement per item.

    Finalized sales cannot be cancelled; this is an abort, not a refund.
    """
    try:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found", details={"sale_id": sale_id})

        if sale.status != SALE_PENDING:
            raise InvalidStateTransitionError(
                "Only pending sales can be cancelled",
                details={"sale_id": sale.id, "status": sale.status},
            )

        for item in sale.items:
            stock_service.release_stock_out(
                item.product_id,
                item.quantity,
                sale_id=sale.id,
                note=f"Cancel sale {sale.sale_number}",
            )

        sale.status = SALE_CANCELLED
        sale.cancelled_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s cancelled, stock restored", sale.sale_number)
    return sale


def _newest_first(query):
    return query.order_by(Sale.created_at.desc(), Sale.id.desc())


def list_sales(status: str | None = None, customer_id: int | None = None) -> list[Sale]:
    query = db.session.query(Sale)
    if status is not None:
        query = query.filter(Sale.status == parse_status(status))
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    return _newest_first(query).all()


def list_sales_by_customer(customer_id: int) -> list[Sale]:
    return list_sales(customer_id=customer_id)


def list_sales_by_status(status: str) -> list[Sale]:
    return list_sales(status=status)


def parse_status(status: str) -> str:
    value = (status or "").strip().upper()
    if value not in SALE_STATUSES:
        raise ValidationError(
            f"Invalid sale status: {status}",
            details={"allowed": list(SALE_STATUSES)},
        )
    return value


def get_sale(sale_id: int) -> Sale | None:
    return db.session.get(Sale, sale_id)


def get_sale_by_number(sale_number: str) -> Sale | None:
    return db.session.query(Sale).filter_by(sale_number=sale_number).first()
