# Offer engine
from app.services.offers.errors import (
    OfferError, OfferValidationError, OfferNotFoundError, ProductLookupError,
)
from app.services.offers.rules import (
    PercentOff, AmountOff, FreeItem, OfferRule, ScopeSet, ProductAttributes,
    CartLine, FreeItemGrant, AppliedOffer, CartCalculationResult, build_reward,
)
from app.services.offers.eligibility import EligibilityResolver, ItemContext
from app.services.offers.stacking import StackingResolver
from app.services.offers.aggregator import CartDiscountAggregator
from app.services.offers.catalog import OfferCatalogStore, offer_to_rule

__all__ = [
    "OfferError",
    "OfferValidationError",
    "OfferNotFoundError",
    "ProductLookupError",
    "PercentOff",
    "AmountOff",
    "FreeItem",
    "OfferRule",
    "ScopeSet",
    "ProductAttributes",
    "CartLine",
    "FreeItemGrant",
    "AppliedOffer",
    "CartCalculationResult",
    "build_reward",
    "EligibilityResolver",
    "ItemContext",
    "StackingResolver",
    "CartDiscountAggregator",
    "OfferCatalogStore",
    "offer_to_rule",
]
