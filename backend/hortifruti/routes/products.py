# Overview: Flask API routes for products and stock movements; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication. Deleting requires the ADMIN role.
Stock counters are read-only here; they move through /movements only.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import NotFoundError
from ..models import Product
from ..services import products_service, stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_CREATE_FIELDS),
    required_on_create={"name", "unit_price"},
)

# Stock counters (initial_stock included) are not editable after creation
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """List all products ordered by name."""
    products = products_service.list_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/low-stock")
@require_auth
def list_low_stock():
    products = products_service.list_low_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    product = products_service.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product.to_dict()


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a new product. A positive initial_stock is logged as an INITIAL movement."""
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    product = products_service.create_product(patch=patch)
    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    updated = products_service.update_product(product_id, patch)
    if updated is None:
        raise NotFoundError("Product not found")
    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def delete_product_route(product_id: int):
    if not products_service.delete_product(product_id):
        raise NotFoundError("Product not found")
    return "", 204


@products_bp.post("/<int:product_id>/movements")
@require_auth
def register_movement_route(product_id: int):
    """
    Register a manual stock movement.

    Body: {"kind": "IN" | "OUT", "quantity": number}
    """
    data = request.get_json(silent=True) or {}
    product = stock_service.register_movement(product_id, data.get("kind"), data.get("quantity"))
    return {"message": "Stock movement registered", "product": product.to_dict()}, 200


@products_bp.get("/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    limit = request.args.get("limit", type=int)
    movements = stock_service.list_movements(product_id, limit=limit)
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}
