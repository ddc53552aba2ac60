from app.models.product import Product, ProductStatus
from app.models.offer import (
    Offer, OfferType,
    OfferScopeProduct, OfferScopeCategory, OfferScopeCollection,
)

__all__ = [
    "Product",
    "ProductStatus",
    "Offer",
    "OfferType",
    "OfferScopeProduct",
    "OfferScopeCategory",
    "OfferScopeCollection",
]
