"""Stacking and discount resolution."""
import uuid
from decimal import Decimal

import pytest

from app.models.offer import OfferType
from app.services.offers.rules import (
    AmountOff, CartLine, FreeItem, FreeItemGrant, OfferRule, PercentOff, ProductAttributes, ScopeSet,
)
from app.services.offers.stacking import StackingResolver

P1 = uuid.UUID(int=1)  # Garland, Christmas
P2 = uuid.UUID(int=2)  # Garland, Easter
P3 = uuid.UUID(int=3)  # Wreath, Christmas
P4 = uuid.UUID(int=4)  # Sign, Autumn

ATTRS = {
    P1: ProductAttributes(category="Garlands", collection="Christmas"),
    P2: ProductAttributes(category="Garlands", collection="Easter"),
    P3: ProductAttributes(category="Wreaths", collection="Christmas"),
    P4: ProductAttributes(category="Signs", collection="Autumn"),
}


def offer(reward, scope, priority=0, stackable=False, oid=None, **kwargs):
    return OfferRule(
        id=oid or uuid.uuid4(),
        name=kwargs.pop("name", "Offer"),
        reward=reward,
        scope=scope,
        priority=priority,
        is_stackable=stackable,
        **kwargs,
    )


def applied_ids(result):
    return [a.offer_id for a in result.applied_offers]


@pytest.fixture
def resolver():
    return StackingResolver()


class TestScenarios:
    def test_percent_off_on_collection(self, resolver):
        o1 = offer(PercentOff(Decimal("15")), ScopeSet.of(collections=["Christmas"]), priority=10)
        result = resolver.apply([CartLine(P1, 48, Decimal("7.50"))], [o1], ATTRS)

        assert result.original_amount == Decimal("360.00")
        assert applied_ids(result) == [o1.id]
        assert result.applied_offers[0].discount == Decimal("54.00")
        assert result.total_discount == Decimal("54.00")
        assert result.final_amount == Decimal("306.00")

    def test_free_item_per_line(self, resolver):
        o2 = offer(FreeItem(P3, 1), ScopeSet.of(categories=["Garlands"]), min_quantity=2)
        result = resolver.apply([CartLine(P2, 2, Decimal("6.80"))], [o2], ATTRS)

        assert result.free_items == (FreeItemGrant(P3, 1),)
        assert result.applied_offers[0].type == OfferType.FREE_ITEM
        assert result.total_discount == Decimal("0.00")

    def test_min_order_amount_gate(self, resolver):
        o3 = offer(AmountOff(Decimal("20")), ScopeSet.of(categories=["Garlands"]),
                   min_order_amount=Decimal("200"))
        result = resolver.apply([CartLine(P1, 20, Decimal("7.50"))], [o3], ATTRS)

        assert result.original_amount == Decimal("150.00")
        assert result.applied_offers == ()
        assert result.total_discount == Decimal("0.00")
        assert result.final_amount == Decimal("150.00")

    def test_non_stackable_after_stackable_is_dropped(self, resolver):
        o4 = offer(PercentOff(Decimal("10")), ScopeSet.of(collections=["Christmas"]),
                   priority=10, stackable=True)
        o5 = offer(AmountOff(Decimal("5")), ScopeSet.of(categories=["Garlands"]),
                   priority=5, stackable=False)
        later = offer(AmountOff(Decimal("1")), ScopeSet.of(categories=["Garlands"]),
                      priority=1, stackable=True)

        result = resolver.apply([CartLine(P1, 10, Decimal("10.00"))], [later, o5, o4], ATTRS)

        assert applied_ids(result) == [o4.id]
        assert result.total_discount == Decimal("10.00")
        assert result.final_amount == Decimal("90.00")


class TestStacking:
    def test_stackable_offers_accumulate(self, resolver):
        garlands = offer(PercentOff(Decimal("10")), ScopeSet.of(categories=["Garlands"]),
                         priority=5, stackable=True)
        signs = offer(AmountOff(Decimal("3")), ScopeSet.of(categories=["Signs"]),
                      priority=4, stackable=True)
        cart = [CartLine(P1, 10, Decimal("5.00")), CartLine(P4, 4, Decimal("5.00"))]

        result = resolver.apply(cart, [signs, garlands], ATTRS)

        assert applied_ids(result) == [garlands.id, signs.id]
        assert result.total_discount == Decimal("8.00")
        assert result.total_discount == sum(a.discount for a in result.applied_offers)

    def test_top_non_stackable_is_exclusive(self, resolver):
        exclusive = offer(PercentOff(Decimal("25")), ScopeSet.of(collections=["Christmas"]),
                          priority=12, stackable=False)
        others = [
            offer(AmountOff(Decimal("5")), ScopeSet.of(categories=["Garlands"]), priority=8, stackable=True),
            offer(PercentOff(Decimal("5")), ScopeSet.of(products=[P1]), priority=3, stackable=False),
        ]

        result = resolver.apply([CartLine(P1, 4, Decimal("10.00"))], others + [exclusive], ATTRS)

        assert applied_ids(result) == [exclusive.id]
        assert result.total_discount == Decimal("10.00")

    def test_zero_result_offer_does_not_block(self, resolver):
        # Free item threshold not reached on any line: skipped, not applied
        free = offer(FreeItem(P3, 1), ScopeSet.of(categories=["Garlands"]), priority=10,
                     min_quantity=3, stackable=False)
        percent = offer(PercentOff(Decimal("10")), ScopeSet.of(categories=["Garlands"]), priority=1)
        cart = [CartLine(P1, 2, Decimal("10.00")), CartLine(P2, 2, Decimal("10.00"))]

        result = resolver.apply(cart, [free, percent], ATTRS)

        assert applied_ids(result) == [percent.id]

    def test_equal_priority_tie_break_by_id(self, resolver):
        a = offer(AmountOff(Decimal("2")), ScopeSet.of(categories=["Garlands"]), priority=5,
                  oid=uuid.UUID(int=100))
        b = offer(AmountOff(Decimal("3")), ScopeSet.of(categories=["Garlands"]), priority=5,
                  oid=uuid.UUID(int=200))

        result = resolver.apply([CartLine(P1, 1, Decimal("10.00"))], [b, a], ATTRS)

        assert applied_ids(result) == [a.id]

    def test_idempotent(self, resolver):
        offers = [
            offer(PercentOff(Decimal("12.5")), ScopeSet.of(collections=["Christmas"]), priority=3, stackable=True),
            offer(FreeItem(P4, 2), ScopeSet.of(categories=["Garlands"]), priority=2, stackable=True,
                  min_quantity=5),
        ]
        cart = [CartLine(P1, 11, Decimal("3.33")), CartLine(P3, 2, Decimal("9.99"))]

        assert resolver.apply(cart, offers, ATTRS) == resolver.apply(cart, offers, ATTRS)


class TestGates:
    def test_min_quantity_counts_whole_cart(self, resolver):
        garlands_only = offer(AmountOff(Decimal("5")), ScopeSet.of(categories=["Garlands"]),
                              min_quantity=10)
        # 2 garlands in scope, 8 signs out of scope: cart total 10 passes the gate
        cart = [CartLine(P1, 2, Decimal("1.00")), CartLine(P4, 8, Decimal("1.00"))]

        result = resolver.apply(cart, [garlands_only], ATTRS)

        assert applied_ids(result) == [garlands_only.id]

    def test_min_quantity_not_met(self, resolver):
        o = offer(AmountOff(Decimal("5")), ScopeSet.of(categories=["Garlands"]), min_quantity=50)
        assert resolver.apply([CartLine(P1, 49, Decimal("1.00"))], [o], ATTRS).applied_offers == ()

    def test_no_line_in_scope(self, resolver):
        o = offer(AmountOff(Decimal("5")), ScopeSet.of(collections=["Easter"]))
        assert resolver.apply([CartLine(P1, 5, Decimal("1.00"))], [o], ATTRS).applied_offers == ()


class TestDiscounts:
    def test_percent_only_on_applicable_lines(self, resolver):
        o = offer(PercentOff(Decimal("10")), ScopeSet.of(collections=["Christmas"]))
        cart = [CartLine(P1, 1, Decimal("100.00")), CartLine(P4, 1, Decimal("50.00"))]

        result = resolver.apply(cart, [o], ATTRS)

        assert result.total_discount == Decimal("10.00")
        assert result.final_amount == Decimal("140.00")

    def test_percent_rounds_half_up(self, resolver):
        o = offer(PercentOff(Decimal("15")), ScopeSet.of(products=[P1]))
        result = resolver.apply([CartLine(P1, 1, Decimal("0.10"))], [o], ATTRS)
        assert result.total_discount == Decimal("0.02")  # 0.015

    def test_amount_off_is_flat(self, resolver):
        o = offer(AmountOff(Decimal("20")), ScopeSet.of(categories=["Garlands"]))
        cart = [CartLine(P1, 1, Decimal("10.00")), CartLine(P2, 30, Decimal("10.00"))]
        assert resolver.apply(cart, [o], ATTRS).total_discount == Decimal("20.00")

    def test_final_amount_never_negative(self, resolver):
        o = offer(AmountOff(Decimal("50")), ScopeSet.of(products=[P1]))
        result = resolver.apply([CartLine(P1, 1, Decimal("10.00"))], [o], ATTRS)

        assert result.total_discount == Decimal("50.00")
        assert result.final_amount == Decimal("0.00")

    def test_free_item_grants_kept_per_line(self, resolver):
        o = offer(FreeItem(P4, 1), ScopeSet.of(categories=["Garlands"]), min_quantity=2)
        cart = [CartLine(P1, 5, Decimal("1.00")), CartLine(P2, 3, Decimal("1.00"))]

        result = resolver.apply(cart, [o], ATTRS)

        assert result.free_items == (FreeItemGrant(P4, 2), FreeItemGrant(P4, 1))

    def test_free_item_pooled_across_lines(self, resolver):
        o = offer(FreeItem(P4, 2), ScopeSet.of(categories=["Garlands"]), min_quantity=2,
                  applies_to_any_qty=True)
        cart = [CartLine(P1, 3, Decimal("1.00")), CartLine(P2, 3, Decimal("1.00"))]

        result = resolver.apply(cart, [o], ATTRS)

        assert result.free_items == (FreeItemGrant(P4, 6),)

    def test_free_item_without_min_quantity_grants_per_unit(self, resolver):
        o = offer(FreeItem(P4, 1), ScopeSet.of(products=[P1]))
        result = resolver.apply([CartLine(P1, 3, Decimal("1.00"))], [o], ATTRS)
        assert result.free_items == (FreeItemGrant(P4, 3),)

    def test_empty_candidates(self, resolver):
        result = resolver.apply([CartLine(P1, 2, Decimal("4.99"))], [], ATTRS)
        assert result.applied_offers == ()
        assert result.original_amount == result.final_amount == Decimal("9.98")
