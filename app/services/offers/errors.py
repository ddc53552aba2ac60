"""Exceptions raised by the offer engine and its collaborators."""
from typing import Dict, Optional


class OfferError(Exception):
    """Base exception for offer errors."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class OfferValidationError(OfferError):
    """Offer payload is incomplete or inconsistent; nothing was stored."""


class OfferNotFoundError(OfferError):
    """Offer (or a product it references) does not exist."""


class ProductLookupError(OfferError):
    """One or more product ids could not be resolved."""
    def __init__(self, message: str, missing_ids=None):
        self.missing_ids = sorted(str(pid) for pid in (missing_ids or []))
        super().__init__(message, {"missing_product_ids": self.missing_ids})
