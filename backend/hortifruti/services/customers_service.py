# backend/hortifruti/services/customers_service.py
"""
Customers Service

Customer and address maintenance. Addresses are owned by their customer and
removed with it. Customers referenced by sales cannot be deleted.
"""
from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Address, Customer, Sale

CUSTOMER_MUTABLE_FIELDS = {
    "name", "tax_id", "company_tax_id", "state_registration",
    "phone", "state", "payment_terms", "bank",
}
ADDRESS_MUTABLE_FIELDS = {
    "street", "number", "complement", "district", "city", "state", "zip_code", "principal",
}


def _apply(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k in allowed:
            setattr(obj, k, v)


def _ensure_tax_id_free(tax_id: str | None, exclude_id: int | None = None) -> None:
    if not tax_id:
        return
    query = db.session.query(Customer.id).filter(Customer.tax_id == tax_id)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError("A customer with this CPF already exists")


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer | None:
    return db.session.get(Customer, customer_id)


def require_customer(customer_id: int) -> Customer:
    customer = get_customer(customer_id)
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def create_customer(*, patch: dict, address_patch: dict | None = None) -> tuple[Customer, Address | None]:
    """
    Create a customer and, optionally, its first address in one transaction.

    The address is principal unless the caller says otherwise.
    """
    if patch.get("id"):
        raise ValidationError("id must not be provided when creating a customer")

    _ensure_tax_id_free(patch.get("tax_id"))

    customer = Customer()
    _apply(customer, patch, CUSTOMER_MUTABLE_FIELDS)

    address = None
    try:
        db.session.add(customer)
        db.session.flush()

        if address_patch is not None:
            address = Address(customer_id=customer.id)
            _apply(address, address_patch, ADDRESS_MUTABLE_FIELDS)
            if address_patch.get("principal") is None:
                address.principal = True
            db.session.add(address)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return customer, address


def update_customer(customer_id: int, patch: dict) -> Customer | None:
    customer = get_customer(customer_id)
    if customer is None:
        return None

    if "tax_id" in patch:
        _ensure_tax_id_free(patch["tax_id"], exclude_id=customer_id)

    _apply(customer, patch, CUSTOMER_MUTABLE_FIELDS)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return customer


def delete_customer(customer_id: int) -> bool:
    customer = get_customer(customer_id)
    if customer is None:
        return False

    has_sales = db.session.query(Sale.id).filter(Sale.customer_id == customer_id).first()
    if has_sales:
        raise ConflictError("Customer has sales and cannot be deleted")

    try:
        db.session.delete(customer)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return True


def list_addresses(customer_id: int) -> list[Address]:
    require_customer(customer_id)
    return (
        db.session.query(Address)
        .filter(Address.customer_id == customer_id)
        .order_by(Address.principal.desc(), Address.id.asc())
        .all()
    )


def principal_address(customer_id: int) -> Address | None:
    """First address in principal-first order, or None."""
    return (
        db.session.query(Address)
        .filter(Address.customer_id == customer_id)
        .order_by(Address.principal.desc(), Address.id.asc())
        .first()
    )


def add_address(customer_id: int, patch: dict) -> Address:
    require_customer(customer_id)

    address = Address(customer_id=customer_id, principal=False)
    _apply(address, patch, ADDRESS_MUTABLE_FIELDS)
    try:
        db.session.add(address)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return address
