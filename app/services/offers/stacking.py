"""Stacking & discount resolution over a priority-ordered offer list.

Single deterministic pass:
1. Offers are visited by priority desc, offer id asc.
2. Gates: total cart quantity >= min_quantity, original amount >=
   min_order_amount, at least one cart line in scope.
3. Discount over the in-scope lines only (AMOUNT_OFF is a flat deduction).
4. An offer producing neither a discount nor a free item is not applied.
5. A non-stackable offer met after something was applied is dropped and
   ends the pass; a non-stackable offer applied first ends the pass after
   being applied.
"""
import logging
import uuid
from decimal import Decimal
from typing import Iterable, List, Mapping, Sequence

from app.services.offers.rules import (
    ZERO, AmountOff, AppliedOffer, CartCalculationResult, CartLine, FreeItem,
    FreeItemGrant, OfferRule, PercentOff, ProductAttributes, evaluation_order, to_money,
)

logger = logging.getLogger(__name__)


class StackingResolver:
    """Decides which candidate offers apply together and what each is worth."""

    def apply(
        self,
        cart: Sequence[CartLine],
        candidates: Iterable[OfferRule],
        attributes: Mapping[uuid.UUID, ProductAttributes],
    ) -> CartCalculationResult:
        original_amount = to_money(sum((line.line_total for line in cart), ZERO))
        total_quantity = sum(line.quantity for line in cart)

        applied: List[AppliedOffer] = []
        free_items: List[FreeItemGrant] = []
        total_discount = ZERO

        for offer in evaluation_order(candidates):
            applicable = self.applicable_lines(offer, cart, attributes)

            if not self._passes_gates(offer, total_quantity, original_amount, applicable):
                continue

            result = self.calculate_offer(offer, applicable)
            if result.discount == 0 and not result.free_items:
                logger.debug(f"Offer {offer.id} produced no discount, skipped")
                continue

            if applied and not offer.is_stackable:
                logger.debug(
                    f"Offer {offer.id} is not stackable with {len(applied)} applied offer(s), "
                    f"stopping"
                )
                break

            applied.append(result)
            total_discount += result.discount
            free_items.extend(result.free_items)

            if not offer.is_stackable:
                logger.debug(f"Offer {offer.id} is not stackable, blocking lower priorities")
                break

        total_discount = to_money(total_discount)
        return CartCalculationResult(
            applied_offers=tuple(applied),
            total_discount=total_discount,
            original_amount=original_amount,
            final_amount=to_money(max(ZERO, original_amount - total_discount)),
            free_items=tuple(free_items),
        )

    def applicable_lines(
        self,
        offer: OfferRule,
        cart: Sequence[CartLine],
        attributes: Mapping[uuid.UUID, ProductAttributes],
    ) -> List[CartLine]:
        """Cart lines falling in the offer's scope."""
        return [
            line for line in cart
            if offer.scope.covers(line.product_id, attributes.get(line.product_id))
        ]

    def _passes_gates(
        self,
        offer: OfferRule,
        total_quantity: int,
        original_amount: Decimal,
        applicable: Sequence[CartLine],
    ) -> bool:
        if offer.min_quantity > 0 and total_quantity < offer.min_quantity:
            logger.debug(f"Offer {offer.id}: cart quantity {total_quantity} < {offer.min_quantity}")
            return False
        if offer.min_order_amount is not None and original_amount < offer.min_order_amount:
            logger.debug(f"Offer {offer.id}: cart amount {original_amount} < {offer.min_order_amount}")
            return False
        if not applicable:
            logger.debug(f"Offer {offer.id}: no cart line in scope")
            return False
        return True

    def calculate_offer(self, offer: OfferRule, applicable: Sequence[CartLine]) -> AppliedOffer:
        """Discount and free-item grants of one offer over its in-scope lines."""
        reward = offer.reward
        discount = to_money(ZERO)
        grants: List[FreeItemGrant] = []

        if isinstance(reward, PercentOff):
            applicable_amount = sum((line.line_total for line in applicable), ZERO)
            discount = to_money(applicable_amount * reward.percent / 100)
        elif isinstance(reward, AmountOff):
            discount = to_money(reward.amount)
        elif isinstance(reward, FreeItem):
            grants = self._free_item_grants(offer, reward, applicable)

        return AppliedOffer(
            offer_id=offer.id,
            offer_name=offer.name,
            type=offer.type,
            discount=discount,
            free_items=tuple(grants),
        )

    def _free_item_grants(
        self,
        offer: OfferRule,
        reward: FreeItem,
        applicable: Sequence[CartLine],
    ) -> List[FreeItemGrant]:
        # min_quantity of 0 means every unit qualifies
        threshold = max(offer.min_quantity, 1)

        if offer.applies_to_any_qty:
            qualifying = sum(line.quantity for line in applicable)
            free_qty = (qualifying // threshold) * reward.quantity
            return [FreeItemGrant(reward.product_id, free_qty)] if free_qty > 0 else []

        # One grant per qualifying line; grants for the same product stay separate
        grants = []
        for line in applicable:
            free_qty = (line.quantity // threshold) * reward.quantity
            if free_qty > 0:
                grants.append(FreeItemGrant(reward.product_id, free_qty))
        return grants
