from __future__ import annotations

class StorefrontError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

class StoreWriteError(StorefrontError):
    """A write to the document store failed."""

    status_code = 502

class AdminSaveError(StorefrontError):
    status_code = 502

class CouponError(StorefrontError):
    status_code = 400

class CheckoutError(StorefrontError):
    status_code = 400

class LoginError(StorefrontError):
    status_code = 401

class DraftError(StorefrontError):
    """An admin draft edit was rejected."""

    status_code = 422

class NotFoundError(StorefrontError, LookupError):
    status_code = 404

__all__ = [
    "StorefrontError",
    "StoreWriteError",
    "AdminSaveError",
    "CouponError",
    "CheckoutError",
    "LoginError",
    "DraftError",
    "NotFoundError",
]
