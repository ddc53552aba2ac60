"""
Offer Service.

Admin authoring of promotional offers and the storefront entry points:
- create / list / get / update / delete offers
- applicable offers for a cart or a single item
- offers per product (badges)
- cart calculation
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.offer import Offer, OfferType
from app.schemas.offer import CartItem, OfferCreate, OfferScopes, OfferUpdate
from app.services.offers.aggregator import CartDiscountAggregator
from app.services.offers.catalog import OfferCatalogStore, reward_columns
from app.services.offers.eligibility import ItemContext
from app.services.offers.errors import OfferNotFoundError, OfferValidationError
from app.services.offers.rules import (
    CartCalculationResult, CartLine, FreeItem, ScopeSet, as_utc, build_reward, validate_window,
)
from app.services.product_lookup import ProductLookup

logger = logging.getLogger(__name__)

REWARD_FIELDS = ("type", "percent_off", "amount_off", "free_item_product_id", "free_item_qty")
REQUIRED_FIELDS = (
    "name", "min_quantity", "applies_to_any_qty", "priority", "is_stackable", "is_active",
)


class OfferService:
    """Service for offer administration and discount calculation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = OfferCatalogStore(db)
        self.products = ProductLookup(db)
        self.engine = CartDiscountAggregator(self.store, self.products)

    # ==================== AUTHORING ====================

    async def create_offer(
        self,
        data: OfferCreate,
        created_by_user_id: Optional[uuid.UUID] = None,
    ) -> Offer:
        """Validate and store an offer with its scopes."""
        reward = build_reward(
            data.type,
            percent_off=data.percent_off,
            amount_off=data.amount_off,
            free_item_product_id=data.free_item_product_id,
            free_item_qty=data.free_item_qty,
        )
        validate_window(data.starts_at, data.ends_at)
        if isinstance(reward, FreeItem):
            await self._check_free_item_product(reward.product_id)

        scope = self._scope_from(data.scopes)
        await self._check_scope_products(scope)

        fields = data.model_dump(exclude={"scopes", *REWARD_FIELDS})
        fields["starts_at"] = as_utc(data.starts_at)
        fields["ends_at"] = as_utc(data.ends_at)
        fields["created_by_user_id"] = created_by_user_id
        fields.update(reward_columns(reward))

        return await self.store.create_offer_with_scopes(fields, scope)

    async def list_offers(
        self,
        offer_type: Optional[OfferType] = None,
        is_active: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Offer], int, int]:
        """Filtered, paginated admin listing: (offers, total, pages)."""
        return await self.store.list_offers(
            offer_type=offer_type,
            is_active=is_active,
            start_date=as_utc(start_date),
            end_date=as_utc(end_date),
            search=search,
            page=page,
            limit=limit,
        )

    async def get_offer(self, offer_id: uuid.UUID) -> Offer:
        return await self.store.get_offer(offer_id)

    async def update_offer(self, offer_id: uuid.UUID, data: OfferUpdate) -> Offer:
        """
        Patch an offer.

        The merged offer is validated as a whole. Changing the type clears
        the payload of the previous type; supplied scopes replace all scopes.
        """
        offer = await self.store.get_offer(offer_id)
        update_data = data.model_dump(exclude_unset=True, exclude={"scopes"})

        for name in REQUIRED_FIELDS:
            if name in update_data and update_data[name] is None:
                raise OfferValidationError(f"{name} cannot be null", {"field": name})

        merged = {name: update_data.get(name, getattr(offer, name)) for name in REWARD_FIELDS}
        reward = build_reward(
            merged["type"],
            percent_off=merged["percent_off"],
            amount_off=merged["amount_off"],
            free_item_product_id=merged["free_item_product_id"],
            free_item_qty=merged["free_item_qty"],
        )
        starts_at = as_utc(update_data.get("starts_at", offer.starts_at))
        ends_at = as_utc(update_data.get("ends_at", offer.ends_at))
        validate_window(starts_at, ends_at)
        if isinstance(reward, FreeItem) and reward.product_id != offer.free_item_product_id:
            await self._check_free_item_product(reward.product_id)

        scope = None
        if "scopes" in data.model_fields_set and data.scopes is not None:
            scope = self._scope_from(data.scopes)
            await self._check_scope_products(scope)

        fields = {k: v for k, v in update_data.items() if k not in REWARD_FIELDS}
        if "starts_at" in fields:
            fields["starts_at"] = starts_at
        if "ends_at" in fields:
            fields["ends_at"] = ends_at
        fields.update(reward_columns(reward))

        return await self.store.update_offer(offer_id, fields, scope)

    async def delete_offer(self, offer_id: uuid.UUID) -> None:
        await self.store.delete_offer(offer_id)

    # ==================== STOREFRONT ====================

    async def build_cart(self, items: Sequence[CartItem]) -> List[CartLine]:
        """Cart lines from request items, falling back to catalog prices."""
        unpriced = [item.product_id for item in items if item.unit_price is None]
        prices = {}
        if unpriced:
            attributes = await self.products.get_product_attributes(unpriced)
            prices = {pid: attrs.unit_price for pid, attrs in attributes.items()}

        return [
            CartLine(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price if item.unit_price is not None else prices[item.product_id],
            )
            for item in items
        ]

    async def find_applicable_offers(
        self,
        cart_items: Optional[Sequence[CartItem]] = None,
        product_id: Optional[uuid.UUID] = None,
        category: Optional[str] = None,
        collection: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Offer]:
        """Live offers for a cart (non-empty cart_items) or a single item, in evaluation order."""
        await self._begin_snapshot()
        if cart_items:
            context = await self.build_cart(cart_items)
        else:
            context = ItemContext(product_id=product_id, category=category, collection=collection)

        rules = await self.engine.find_applicable_offers(context, now)
        return await self.store.get_offers([rule.id for rule in rules])

    async def find_offers_by_products(
        self,
        product_ids: Sequence[uuid.UUID],
        now: Optional[datetime] = None,
    ) -> Dict[uuid.UUID, List[Offer]]:
        await self._begin_snapshot()
        rules_by_product = await self.engine.find_offers_by_products(product_ids, now)

        offer_ids = list(dict.fromkeys(
            rule.id for rules in rules_by_product.values() for rule in rules
        ))
        offers = {offer.id: offer for offer in await self.store.get_offers(offer_ids)}

        return {
            pid: [offers[rule.id] for rule in rules if rule.id in offers]
            for pid, rules in rules_by_product.items()
        }

    async def calculate_cart_offers(
        self,
        cart_items: Sequence[CartItem],
        now: Optional[datetime] = None,
    ) -> CartCalculationResult:
        await self._begin_snapshot()
        cart = await self.build_cart(cart_items)
        return await self.engine.calculate(cart, now)

    # ==================== HELPERS ====================

    async def _begin_snapshot(self) -> None:
        """
        Run the reads of one calculation against a single snapshot.

        On PostgreSQL the transaction is opened at REPEATABLE READ, so the
        product, offer and scope reads all see the same committed state.
        Other dialects keep their default. A session that is already inside
        a transaction keeps its isolation level.
        """
        if self.db.in_transaction():
            return
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.connection(execution_options={"isolation_level": "REPEATABLE READ"})

    def _scope_from(self, scopes: OfferScopes) -> ScopeSet:
        return ScopeSet.of(
            products=scopes.product_ids,
            categories=(c.strip() for c in scopes.categories),
            collections=(c.strip() for c in scopes.collections),
        )

    async def _check_free_item_product(self, product_id: uuid.UUID) -> None:
        if await self.products.get_product(product_id) is None:
            raise OfferNotFoundError(
                "Free item product not found",
                {"free_item_product_id": str(product_id)},
            )

    async def _check_scope_products(self, scope: ScopeSet) -> None:
        if not scope.products:
            return
        found = await self.products.get_products(scope.products)
        missing = sorted(str(pid) for pid in scope.products if pid not in found)
        if missing:
            raise OfferValidationError(
                "Scope references unknown product(s)",
                {"missing_product_ids": missing},
            )
