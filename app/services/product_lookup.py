"""Product Lookup: resolves product ids to the attributes the offer engine needs."""
import logging
import uuid
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.services.offers.errors import ProductLookupError
from app.services.offers.rules import ProductAttributes

logger = logging.getLogger(__name__)


class ProductLookup:
    """Read-only access to the product catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: uuid.UUID) -> Optional[Product]:
        result = await self.db.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()

    async def get_products(self, product_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Product]:
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        result = await self.db.execute(select(Product).where(Product.id.in_(ids)))
        return {product.id: product for product in result.scalars().all()}

    async def get_product_attributes(
        self, product_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, ProductAttributes]:
        """
        Category, collection and unit price for every requested id.

        Raises ProductLookupError if any id is unknown; the engine never
        computes against a partial product set.
        """
        ids = list(dict.fromkeys(product_ids))
        products = await self.get_products(ids)

        missing = [pid for pid in ids if pid not in products]
        if missing:
            logger.warning(f"Product lookup failed for {len(missing)} id(s): {missing}")
            raise ProductLookupError(
                f"Product(s) not found: {', '.join(str(pid) for pid in missing)}",
                missing_ids=missing,
            )

        return {
            pid: ProductAttributes(
                category=product.category,
                collection=product.collection,
                unit_price=product.price,
            )
            for pid, product in products.items()
        }
