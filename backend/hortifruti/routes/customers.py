# Overview: Flask API routes for customers and addresses; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import NotFoundError, ValidationError
from ..models import Address, Customer
from ..services import customers_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_customer

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(customers_service.CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

ADDRESS_POLICY = ModelValidationPolicy(
    writable_fields=set(customers_service.ADDRESS_MUTABLE_FIELDS),
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    customers = customers_service.list_customers()
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    customer = customers_service.get_customer(customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer.to_dict(include_addresses=True)


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    if payload.get("id"):
        raise ValidationError("id must not be provided when creating a customer")
    payload.pop("id", None)

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    customer, _ = customers_service.create_customer(patch=patch)
    return customer.to_dict(), 201


@customers_bp.post("/with-address")
@require_auth
def create_customer_with_address_route():
    """
    Create a customer and its first address in one call.

    Body: customer fields plus an optional "address" object. The address is
    principal unless "principal": false is sent.
    """
    payload = dict(request.get_json(silent=True) or {})
    address_payload = payload.pop("address", None)
    if payload.get("id"):
        raise ValidationError("id must not be provided when creating a customer")
    payload.pop("id", None)

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    address_patch = None
    if address_payload is not None:
        address_patch = validate_payload(model=Address, payload=address_payload, policy=ADDRESS_POLICY, partial=True)

    customer, address = customers_service.create_customer(patch=patch, address_patch=address_patch)
    return {
        "customer": customer.to_dict(),
        "address": address.to_dict() if address else None,
    }, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    payload.pop("id", None)

    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)

    updated = customers_service.update_customer(customer_id, patch)
    if updated is None:
        raise NotFoundError("Customer not found")
    return updated.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_role("ADMIN")
def delete_customer_route(customer_id: int):
    if not customers_service.delete_customer(customer_id):
        raise NotFoundError("Customer not found")
    return "", 204


@customers_bp.get("/<int:customer_id>/addresses")
@require_auth
def list_addresses_route(customer_id: int):
    addresses = customers_service.list_addresses(customer_id)
    return {"items": [a.to_dict() for a in addresses], "count": len(addresses)}


@customers_bp.post("/<int:customer_id>/addresses")
@require_auth
def add_address_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Address, payload=payload, policy=ADDRESS_POLICY, partial=True)
    address = customers_service.add_address(customer_id, patch)
    return address.to_dict(), 201
