from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data.

    Owns its delivery addresses; deleting a customer removes them.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # CPF (individual) / CNPJ (company) / IE (state registration)
    tax_id = db.Column(db.String(14), nullable=True, unique=True)
    company_tax_id = db.Column(db.String(18), nullable=True)
    state_registration = db.Column(db.String(32), nullable=True)

    phone = db.Column(db.String(32), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    payment_terms = db.Column(db.String(128), nullable=True)
    bank = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    addresses = db.relationship(
        "Address",
        backref=db.backref("customer", lazy=True),
        cascade="all, delete-orphan",
        lazy=True,
        order_by=lambda: (Address.principal.desc(), Address.id.asc()),
    )

    def to_dict(self, include_addresses: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "company_tax_id": self.company_tax_id,
            "state_registration": self.state_registration,
            "phone": self.phone,
            "state": self.state,
            "payment_terms": self.payment_terms,
            "bank": self.bank,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_addresses:
            data["addresses"] = [a.to_dict() for a in self.addresses]
        return data


class Address(db.Model):
    """Delivery location. At most one principal per customer by convention (not enforced)."""
    __tablename__ = "addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    street = db.Column(db.String(255), nullable=True)
    number = db.Column(db.String(32), nullable=True)
    complement = db.Column(db.String(255), nullable=True)
    district = db.Column(db.String(128), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    zip_code = db.Column(db.String(16), nullable=True)
    principal = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "street": self.street,
            "number": self.number,
            "complement": self.complement,
            "district": self.district,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "principal": self.principal,
            "created_at": to_utc_z(self.created_at),
        }
