# Overview: Domain error taxonomy shared by services, routes and the CLI.

"""
Every error here is recoverable by the caller: the failing operation checks
its preconditions before touching any row, so state is left exactly as it
was and the caller can re-prompt.
"""


class StoreError(Exception):
    """Base class for checkout, stock and catalog errors."""
    code = "STORE_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFound(StoreError):
    code = "NOT_FOUND"


class InvalidFormat(StoreError):
    """Identifier, card number or date string failed its format check."""
    code = "INVALID_FORMAT"


class InvalidAmount(StoreError):
    code = "INVALID_AMOUNT"


class InsufficientStock(StoreError):
    code = "INSUFFICIENT_STOCK"


class ReservationError(StoreError):
    """A reservation was closed twice, or touched outside its checkout."""
    code = "RESERVATION_ERROR"


class InvalidDiscount(StoreError):
    code = "INVALID_DISCOUNT"


class InsufficientPoints(StoreError):
    code = "INSUFFICIENT_POINTS"


class ExpiredCard(StoreError):
    code = "EXPIRED_CARD"


class InsufficientPayment(StoreError):
    code = "INSUFFICIENT_PAYMENT"


class InvalidTransactionState(StoreError):
    code = "INVALID_TRANSACTION_STATE"
