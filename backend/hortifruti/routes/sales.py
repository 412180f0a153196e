# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales API routes

Sales are created PENDING (stock taken immediately), then either finalized
or cancelled. Business-rule failures surface as 400/404 through the app's
DomainError handler.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth
from ..errors import NotFoundError, ValidationError
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

NOTES_MAX_LENGTH = 500


def _payment_method_from_request() -> str:
    """
    Payment method from JSON body or query string.

    Falls back to DEFAULT_PAYMENT_METHOD when the frontend sends nothing.
    """
    data = request.get_json(silent=True) or {}
    method = data.get("payment_method") or request.args.get("payment_method")
    if not method or not str(method).strip():
        # TODO: drop the fallback once the frontend always sends payment_method
        method = current_app.config["DEFAULT_PAYMENT_METHOD"]
    return str(method)


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Create a new PENDING sale.

    Body:
        customer_id: int (required)
        delivery_address_id: int (optional, must belong to the customer)
        items: [{"product_id": int, "quantity": number}, ...] (required, non-empty)
        discount: number (optional, default 0)
        notes: str (optional)
    """
    data = request.get_json(silent=True) or {}
    customer_id = data.get("customer_id")

    if customer_id is None:
        raise ValidationError("customer_id required")
    if not isinstance(customer_id, int) or isinstance(customer_id, bool):
        raise ValidationError("customer_id must be an integer")

    delivery_address_id = data.get("delivery_address_id")
    if delivery_address_id is not None and (
        not isinstance(delivery_address_id, int) or isinstance(delivery_address_id, bool)
    ):
        raise ValidationError("delivery_address_id must be an integer")

    items = data.get("items")
    if items is not None and not isinstance(items, list):
        raise ValidationError("items must be a list")

    notes = data.get("notes")
    if notes is not None:
        notes = str(notes).strip() or None
        if notes and len(notes) > NOTES_MAX_LENGTH:
            raise ValidationError(f"notes exceeds max length {NOTES_MAX_LENGTH}")

    sale = sales_service.create_sale(
        customer_id,
        items or [],
        delivery_address_id=delivery_address_id,
        discount=data.get("discount"),
        notes=notes,
    )
    return {"sale": sale.to_dict()}, 201


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Query params:
    - status: PENDING | FINALIZED | CANCELLED (optional)
    - customer_id: int (optional)
    """
    status = request.args.get("status")
    customer_id = request.args.get("customer_id", type=int)
    sales = sales_service.list_sales(status=status, customer_id=customer_id)
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return {"sale": sale.to_dict()}, 200


@sales_bp.get("/number/<string:sale_number>")
@require_auth
def get_sale_by_number_route(sale_number: str):
    sale = sales_service.get_sale_by_number(sale_number)
    if not sale:
        raise NotFoundError("Sale not found")
    return {"sale": sale.to_dict()}, 200


@sales_bp.post("/<int:sale_id>/finalize")
@require_auth
def finalize_sale_route(sale_id: int):
    sale = sales_service.finalize_sale(sale_id, _payment_method_from_request())
    return {"sale": sale.to_dict()}, 200


@sales_bp.post("/number/<string:sale_number>/finalize")
@require_auth
def finalize_sale_by_number_route(sale_number: str):
    sale = sales_service.finalize_sale_by_number(sale_number, _payment_method_from_request())
    return {"sale": sale.to_dict()}, 200


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: int):
    """Cancel a PENDING sale and return its stock."""
    sale = sales_service.cancel_sale(sale_id)
    return {"sale": sale.to_dict()}, 200
