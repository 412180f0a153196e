# Overview: Domain error taxonomy shared by services and the JSON error handlers.

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for business-rule failures.

    Each subclass carries the HTTP status the API answers with, so routes
    never translate errors by hand.
    """
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(DomainError):
    """Customer, address, product or sale missing."""
    status_code = 404


class ValidationError(DomainError):
    """400-level input problem."""
    status_code = 400


class InsufficientStockError(DomainError):
    """Requested quantity exceeds the product's current stock."""
    status_code = 400


class InvalidStateTransitionError(DomainError):
    """Finalize/cancel attempted on a sale that is no longer pending."""
    status_code = 400


class ConflictError(DomainError):
    """409-level business rule conflict (e.g., duplicate CPF)."""
    status_code = 409


class AuthenticationError(DomainError):
    status_code = 401
