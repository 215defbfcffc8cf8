# Overview: Error taxonomy shared by the inventory services and API routes.

"""
Inventory error taxonomy.

Every failure raised by the reference, movement and reconciliation services
is an InventoryError subclass. Errors are detected before any mutation and the
session is rolled back, so a caller never observes a half-applied movement.

The HTTP layer renders them as {"error", "code", "details"} with status_code.
"""
from __future__ import annotations


class InventoryError(Exception):
    """Base class for expected, recoverable inventory failures."""

    status_code = 400
    default_code = "INVENTORY_ERROR"

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class NotFoundError(InventoryError):
    """Material, location, original transaction or user does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"


class InvalidInputError(InventoryError):
    """Non-positive/non-integer quantity, zero delta, missing reason, bad location type."""

    status_code = 400
    default_code = "INVALID_INPUT"


class InsufficientInventoryError(InventoryError):
    """Transfer or Issue would drive a balance below zero."""

    status_code = 409
    default_code = "INSUFFICIENT_INVENTORY"


class NegativeInventoryRejectedError(InventoryError):
    """Adjust would drive a balance below zero."""

    status_code = 409
    default_code = "NEGATIVE_INVENTORY_REJECTED"


class NoShopLocationError(InventoryError):
    """Configuration error: no SHOP-type location exists."""

    status_code = 404
    default_code = "NO_SHOP_LOCATION"


class ReferentialConflictError(InventoryError):
    """Uniqueness, foreign-key or storage-conflict failures surfaced generically."""

    status_code = 409
    default_code = "REFERENTIAL_CONFLICT"
