"""Cart discount aggregation: product join, eligibility, stacking."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from app.services.offers.eligibility import EligibilityResolver, ItemContext, OfferContext
from app.services.offers.rules import (
    ZERO, CartCalculationResult, CartLine, OfferRule, ProductAttributes, ScopeSet, to_money,
)
from app.services.offers.stacking import StackingResolver

logger = logging.getLogger(__name__)


class OfferSource(Protocol):
    async def list_active_offers_matching(
        self, now: datetime, scope: ScopeSet
    ) -> List[OfferRule]: ...


class ProductAttributeSource(Protocol):
    async def get_product_attributes(
        self, product_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, ProductAttributes]: ...


class CartDiscountAggregator:
    """
    Orchestrates one calculation against a consistent snapshot.

    Collaborators are read once per call; everything after the reads is
    pure computation in EligibilityResolver and StackingResolver.
    """

    def __init__(
        self,
        offers: OfferSource,
        products: ProductAttributeSource,
        eligibility: Optional[EligibilityResolver] = None,
        stacking: Optional[StackingResolver] = None,
    ):
        self.offers = offers
        self.products = products
        self.eligibility = eligibility or EligibilityResolver()
        self.stacking = stacking or StackingResolver()

    async def find_applicable_offers(
        self,
        context: OfferContext,
        now: Optional[datetime] = None,
    ) -> List[OfferRule]:
        """Live offers for a cart or an item context, in evaluation order."""
        now = now or datetime.now(timezone.utc)

        if isinstance(context, ItemContext):
            product_ids = [context.product_id] if context.product_id else []
        else:
            product_ids = [line.product_id for line in context]

        attributes = await self.products.get_product_attributes(product_ids)
        scope = self.eligibility.context_scope(context, attributes)
        if scope.is_empty:
            return []

        candidates = await self.offers.list_active_offers_matching(now, scope)
        return self.eligibility.resolve(candidates, scope, now)

    async def find_offers_by_products(
        self,
        product_ids: Sequence[uuid.UUID],
        now: Optional[datetime] = None,
    ) -> Dict[uuid.UUID, List[OfferRule]]:
        """Offers per product (by id, category or collection) for badge display."""
        now = now or datetime.now(timezone.utc)
        unique_ids = list(dict.fromkeys(product_ids))
        if not unique_ids:
            return {}

        attributes = await self.products.get_product_attributes(unique_ids)
        scopes = {
            pid: self.eligibility.context_scope(ItemContext(product_id=pid), attributes)
            for pid in unique_ids
        }

        union = ScopeSet()
        for scope in scopes.values():
            union = union.union(scope)
        candidates = await self.offers.list_active_offers_matching(now, union)

        return {
            pid: self.eligibility.resolve(candidates, scope, now)
            for pid, scope in scopes.items()
        }

    async def calculate(
        self,
        cart: Sequence[CartLine],
        now: Optional[datetime] = None,
    ) -> CartCalculationResult:
        """Applied offers, totals and free items for a cart."""
        if not cart:
            nothing = to_money(ZERO)
            return CartCalculationResult(
                applied_offers=(),
                total_discount=nothing,
                original_amount=nothing,
                final_amount=nothing,
                free_items=(),
            )

        now = now or datetime.now(timezone.utc)
        distinct_ids = list(dict.fromkeys(line.product_id for line in cart))
        attributes = await self.products.get_product_attributes(distinct_ids)

        scope = self.eligibility.context_scope(cart, attributes)
        candidates = await self.offers.list_active_offers_matching(now, scope)
        eligible = self.eligibility.resolve(candidates, scope, now)

        result = self.stacking.apply(cart, eligible, attributes)
        logger.debug(
            f"Cart of {len(cart)} line(s): {len(eligible)} eligible, "
            f"{len(result.applied_offers)} applied, discount {result.total_discount}"
        )
        return result
