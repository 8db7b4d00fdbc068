# Overview: Domain error taxonomy; each error knows the HTTP status it renders as.

from __future__ import annotations


class StorefrontError(Exception):
    """Base for every domain failure reported to a caller."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, details: dict | list | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(StorefrontError):
    status_code = 404
    code = "not_found"


class ValidationError(StorefrontError):
    """400-level input problem (schema or domain rule)."""

    code = "validation_failed"


class ConflictError(StorefrontError):
    """409-level uniqueness conflict (e.g., duplicate SKU or promo code)."""

    status_code = 409
    code = "conflict"


class InsufficientInventoryError(StorefrontError):
    code = "insufficient_inventory"


class EmptyCartError(StorefrontError):
    code = "empty_cart"


class InvalidStatusError(StorefrontError):
    code = "invalid_status"


# Promo rejection reasons, in the order they are checked
PROMO_NOT_FOUND = "not_found"
PROMO_EXPIRED = "expired"
PROMO_LIMIT_EXCEEDED = "limit_exceeded"
PROMO_MINIMUM_NOT_MET = "minimum_not_met"


class PromoRejectedError(StorefrontError):
    code = "promo_rejected"

    def __init__(self, reason: str, message: str, details: dict | None = None):
        super().__init__(message, details)
        self.reason = reason
        if reason == PROMO_NOT_FOUND:
            self.status_code = 404

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["reason"] = self.reason
        return body


class FloorViolation(StorefrontError):
    """An atomic counter adjustment would cross its floor (or ceiling)."""

    status_code = 409
    code = "floor_violation"
