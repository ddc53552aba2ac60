"""Which live offers touch a cart or a single item."""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.services.offers.eligibility import EligibilityResolver, ItemContext
from app.services.offers.errors import ProductLookupError
from app.services.offers.rules import (
    AmountOff, CartLine, OfferRule, PercentOff, ProductAttributes, ScopeSet,
)

NOW = datetime(2026, 12, 1, tzinfo=timezone.utc)
GARLAND = uuid.UUID(int=10)
SIGN = uuid.UUID(int=11)
ATTRS = {
    GARLAND: ProductAttributes(category="Garlands", collection="Christmas", unit_price=Decimal("7.50")),
    SIGN: ProductAttributes(category="Signs", collection="Autumn", unit_price=Decimal("5.00")),
}


def rule(scope, priority=0, **kwargs):
    return OfferRule(
        id=kwargs.pop("id", uuid.uuid4()),
        name="Offer",
        reward=kwargs.pop("reward", PercentOff(Decimal("10"))),
        scope=scope,
        priority=priority,
        **kwargs,
    )


@pytest.fixture
def resolver():
    return EligibilityResolver()


class TestContextScope:
    def test_cart_scope_unions_ids_categories_collections(self, resolver):
        cart = [CartLine(GARLAND, 2, Decimal("7.50")), CartLine(SIGN, 1, Decimal("5.00"))]
        scope = resolver.context_scope(cart, ATTRS)
        assert scope.products == {GARLAND, SIGN}
        assert scope.categories == {"Garlands", "Signs"}
        assert scope.collections == {"Christmas", "Autumn"}

    def test_cart_with_unknown_product_fails(self, resolver):
        unknown = uuid.uuid4()
        with pytest.raises(ProductLookupError) as exc_info:
            resolver.context_scope([CartLine(unknown, 1, Decimal("1"))], ATTRS)
        assert exc_info.value.missing_ids == [str(unknown)]

    def test_item_scope_folds_in_product_attributes(self, resolver):
        scope = resolver.context_scope(ItemContext(product_id=GARLAND), ATTRS)
        assert scope == ScopeSet.of(products=[GARLAND], categories=["Garlands"], collections=["Christmas"])

    def test_item_scope_without_product(self, resolver):
        scope = resolver.context_scope(ItemContext(category="Wreaths"), {})
        assert scope == ScopeSet.of(categories=["Wreaths"])

    def test_item_scope_unknown_product_fails(self, resolver):
        with pytest.raises(ProductLookupError):
            resolver.context_scope(ItemContext(product_id=uuid.uuid4()), ATTRS)


class TestResolve:
    def test_empty_context_returns_nothing(self, resolver):
        offers = [rule(ScopeSet.of(categories=["Garlands"]))]
        assert resolver.resolve(offers, ScopeSet(), NOW) == []

    def test_matches_on_any_scope_dimension(self, resolver):
        by_product = rule(ScopeSet.of(products=[GARLAND]))
        by_category = rule(ScopeSet.of(categories=["Garlands"]))
        by_collection = rule(ScopeSet.of(collections=["Christmas"]))
        unrelated = rule(ScopeSet.of(collections=["Easter"]))

        scope = resolver.context_scope(ItemContext(product_id=GARLAND), ATTRS)
        result = resolver.resolve([by_product, by_category, by_collection, unrelated], scope, NOW)

        assert set(result) == {by_product, by_category, by_collection}

    def test_offer_without_scope_never_applies(self, resolver):
        assert resolver.resolve([rule(ScopeSet())], ScopeSet.of(categories=["Garlands"]), NOW) == []

    def test_inactive_and_out_of_window_excluded(self, resolver):
        scope = ScopeSet.of(categories=["Garlands"])
        live = rule(scope, starts_at=NOW, ends_at=NOW)
        inactive = rule(scope, is_active=False)
        expired = rule(scope, ends_at=NOW - timedelta(days=1))
        upcoming = rule(scope, starts_at=NOW + timedelta(days=1))

        assert resolver.resolve([live, inactive, expired, upcoming], scope, NOW) == [live]

    def test_priority_order_with_id_tie_break(self, resolver):
        scope = ScopeSet.of(categories=["Garlands"])
        first = rule(scope, priority=10, id=uuid.UUID(int=2))
        second = rule(scope, priority=5, id=uuid.UUID(int=1))
        third = rule(scope, priority=5, id=uuid.UUID(int=3), reward=AmountOff(Decimal("5")))

        assert resolver.resolve([third, second, first], scope, NOW) == [first, second, third]
