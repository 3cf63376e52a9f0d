# Overview: Typed domain errors raised by the service layer and mapped to HTTP responses by routes.

"""
Error taxonomy for checkout, ledger and ownership operations.

Every error carries a human-readable message (safe to show to the cashier)
and an optional details dict for structured feedback, e.g. which product ran
out of stock. Routes translate them with `error_response`; nothing below the
route layer swallows them.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for all domain errors."""
    code = "pos_error"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(PosError):
    """Malformed input (bad cart shape, negative price, blank name)."""
    code = "validation_error"
    http_status = 400


class Unauthorized(PosError):
    """Principal is unknown or lacks visibility/ownership of a row."""
    code = "unauthorized"
    http_status = 403


class NotFound(PosError):
    code = "not_found"
    http_status = 404


class InsufficientStock(PosError):
    """Quantity exceeds available units at commit time."""
    code = "insufficient_stock"
    http_status = 409


class InsufficientPayment(PosError):
    code = "insufficient_payment"
    http_status = 422


class InvalidAmount(PosError):
    """Ledger amount is non-positive or exceeds the outstanding balance."""
    code = "invalid_amount"
    http_status = 422


class MissingCustomerName(PosError):
    code = "missing_customer_name"
    http_status = 422


class ConflictRetry(PosError):
    """Transient serialization conflict that survived every retry attempt."""
    code = "conflict_retry"
    http_status = 503


def error_response(exc: PosError):
    """Flask (body, status) tuple for a domain error."""
    return exc.to_dict(), exc.http_status
