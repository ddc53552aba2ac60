"""
Seed demo products and offers.

Safe to run repeatedly: products are matched by SKU and offers by name.

Usage:
    DATABASE_URL=postgresql://... python -m scripts.seed_offers
"""
import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from app.database import get_db_session, init_db
from app.models.offer import Offer, OfferType
from app.models.product import Product
from app.schemas.offer import OfferCreate, OfferScopes
from app.services.offer_service import OfferService

logger = logging.getLogger(__name__)


DEMO_PRODUCTS = [
    # sku, name, category, collection, price
    ("XM-GAR-001", "Pine Garland 6ft", "Garlands", "Christmas", "7.50"),
    ("XM-WRE-001", "Frosted Berry Wreath", "Wreaths", "Christmas", "12.00"),
    ("XM-DHG-001", "Merry Christmas Door Hanger", "Door Hangers", "Christmas", "4.25"),
    ("EA-GAR-001", "Spring Blossom Garland", "Garlands", "Easter", "6.80"),
    ("EA-SGN-001", "Happy Easter Welcome Sign", "Signs", "Easter", "5.50"),
    ("AU-WRE-001", "Harvest Leaf Wreath", "Wreaths", "Autumn", "11.00"),
    ("AU-SGN-001", "Autumn Welcome Sign", "Signs", "Autumn", "5.00"),
]


def _on(month: int, day: int) -> datetime:
    return datetime(datetime.now(timezone.utc).year, month, day, tzinfo=timezone.utc)


def demo_offers(free_item_product_id) -> list:
    return [
        OfferCreate(
            name="Christmas Collection 15% Off",
            description="Get 15% off all Christmas decorations - perfect for holiday stocking!",
            type=OfferType.PERCENT_OFF,
            percent_off=Decimal("15"),
            starts_at=_on(11, 1),
            ends_at=_on(12, 31),
            priority=10,
            is_stackable=False,
            scopes=OfferScopes(collections=["Christmas"]),
        ),
        OfferCreate(
            name="Bulk Order Discount",
            description="Save £20 on orders over £200 - perfect for retailers stocking up",
            type=OfferType.AMOUNT_OFF,
            amount_off=Decimal("20"),
            min_order_amount=Decimal("200"),
            priority=5,
            is_stackable=True,
            scopes=OfferScopes(categories=["Garlands", "Wreaths", "Door Hangers"]),
        ),
        OfferCreate(
            name="Buy 2 Garlands Get 1 Free",
            description="Purchase 2 garlands and get a third one absolutely free!",
            type=OfferType.FREE_ITEM,
            free_item_product_id=free_item_product_id,
            free_item_qty=1,
            min_quantity=2,
            applies_to_any_qty=False,
            priority=8,
            is_stackable=False,
            scopes=OfferScopes(categories=["Garlands"]),
        ),
        OfferCreate(
            name="Easter Early Bird Special",
            description="Early bird special - 10% off Easter collection for spring preparation",
            type=OfferType.PERCENT_OFF,
            percent_off=Decimal("10"),
            starts_at=_on(2, 1),
            ends_at=_on(4, 30),
            min_quantity=20,
            priority=7,
            is_stackable=True,
            scopes=OfferScopes(collections=["Easter"]),
        ),
        OfferCreate(
            name="Autumn Clearance Sale",
            description="End of season clearance - 25% off all autumn decorations",
            type=OfferType.PERCENT_OFF,
            percent_off=Decimal("25"),
            starts_at=_on(11, 15),
            ends_at=_on(12, 15),
            priority=12,
            is_stackable=False,
            scopes=OfferScopes(collections=["Autumn"]),
        ),
        OfferCreate(
            name="Welcome Signs Bundle",
            description="Special pricing on welcome signs and door hangers - £5 off orders of 50+ units",
            type=OfferType.AMOUNT_OFF,
            amount_off=Decimal("5"),
            min_quantity=50,
            applies_to_any_qty=True,
            priority=6,
            is_stackable=True,
            scopes=OfferScopes(categories=["Signs", "Door Hangers"]),
        ),
    ]


async def seed_products(db) -> dict:
    products = {}
    for sku, name, category, collection, price in DEMO_PRODUCTS:
        result = await db.execute(select(Product).where(Product.sku == sku))
        product = result.scalar_one_or_none()
        if not product:
            product = Product(
                sku=sku,
                name=name,
                category=category,
                collection=collection,
                price=Decimal(price),
            )
            db.add(product)
            logger.info(f"Created product {sku}")
        products[sku] = product
    await db.commit()
    return products


async def seed_offers(db, free_item_product_id) -> int:
    service = OfferService(db)
    created = 0
    for data in demo_offers(free_item_product_id):
        result = await db.execute(select(Offer.id).where(Offer.name == data.name))
        if result.first():
            logger.info(f"Offer '{data.name}' exists, skipped")
            continue
        offer = await service.create_offer(data)
        logger.info(f"Created offer: {offer.name} ({offer.id})")
        created += 1
    return created


async def main():
    await init_db()
    async with get_db_session() as db:
        products = await seed_products(db)
        created = await seed_offers(db, products["XM-GAR-001"].id)
    logger.info(f"Seeded {len(products)} products, {created} new offers")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    asyncio.run(main())
