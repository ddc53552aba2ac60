"""Eligibility resolution: which live offers touch a cart or a single item."""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from app.services.offers.errors import ProductLookupError
from app.services.offers.rules import (
    CartLine, OfferRule, ProductAttributes, ScopeSet, evaluation_order,
)


@dataclass(frozen=True)
class ItemContext:
    """A product detail or catalog view: any combination of the three keys."""
    product_id: Optional[uuid.UUID] = None
    category: Optional[str] = None
    collection: Optional[str] = None


OfferContext = Union[ItemContext, Sequence[CartLine]]


class EligibilityResolver:
    """
    Filters candidate offers down to the ones that are live and in scope.

    Conditions (all must hold):
    - is_active
    - starts_at absent or <= now
    - ends_at absent or >= now
    - offer scope intersects the context scope on products, categories
      or collections
    """

    def context_scope(
        self,
        context: OfferContext,
        attributes: Mapping[uuid.UUID, ProductAttributes],
    ) -> ScopeSet:
        """
        Union of product ids, categories and collections a context touches.

        For an item context with a product_id, that product's own category
        and collection are folded in as well.
        """
        if isinstance(context, ItemContext):
            return self._item_scope(context, attributes)
        return self._cart_scope(context, attributes)

    def _item_scope(
        self,
        context: ItemContext,
        attributes: Mapping[uuid.UUID, ProductAttributes],
    ) -> ScopeSet:
        categories = [context.category]
        collections = [context.collection]
        if context.product_id is not None:
            product = attributes.get(context.product_id)
            if product is None:
                raise ProductLookupError(
                    f"Product not found: {context.product_id}",
                    missing_ids=[context.product_id],
                )
            categories.append(product.category)
            collections.append(product.collection)
        return ScopeSet.of(
            products=[context.product_id],
            categories=categories,
            collections=collections,
        )

    def _cart_scope(
        self,
        cart: Sequence[CartLine],
        attributes: Mapping[uuid.UUID, ProductAttributes],
    ) -> ScopeSet:
        product_ids = {line.product_id for line in cart}
        missing = product_ids - set(attributes)
        if missing:
            raise ProductLookupError(
                f"Cannot resolve {len(missing)} cart product(s)",
                missing_ids=missing,
            )
        return ScopeSet.of(
            products=product_ids,
            categories=(attributes[pid].category for pid in product_ids),
            collections=(attributes[pid].collection for pid in product_ids),
        )

    def resolve(
        self,
        offers: Iterable[OfferRule],
        scope: ScopeSet,
        now: datetime,
    ) -> List[OfferRule]:
        """Live offers whose scope intersects `scope`, in evaluation order."""
        if scope.is_empty:
            return []
        return evaluation_order(
            offer for offer in offers
            if offer.is_live(now) and offer.scope.intersects(scope)
        )
