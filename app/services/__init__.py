# Services module
from app.services.product_lookup import ProductLookup

__all__ = [
    "ProductLookup",
]
