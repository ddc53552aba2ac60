"""Offer engine data model and authoring validation.

Rewards are a closed set of frozen dataclasses (PercentOff, AmountOff,
FreeItem); an OfferRule carries exactly one of them, so a percent offer can
never also hold a free-item quantity.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from app.models.offer import OfferType
from app.services.offers.errors import OfferValidationError

MONEY = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    """Round to cents, half up."""
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite round trip) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ==================== REWARDS ====================

@dataclass(frozen=True)
class PercentOff:
    percent: Decimal

    type = OfferType.PERCENT_OFF


@dataclass(frozen=True)
class AmountOff:
    amount: Decimal

    type = OfferType.AMOUNT_OFF


@dataclass(frozen=True)
class FreeItem:
    product_id: uuid.UUID
    quantity: int = 1

    type = OfferType.FREE_ITEM


Reward = Union[PercentOff, AmountOff, FreeItem]


def _decimal_or_none(value, field_name: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise OfferValidationError(f"{field_name} must be numeric", {"field": field_name})


def build_reward(
    offer_type,
    percent_off=None,
    amount_off=None,
    free_item_product_id: Optional[uuid.UUID] = None,
    free_item_qty: Optional[int] = None,
) -> Reward:
    """
    Build the reward for an offer type from its raw payload fields.

    Raises OfferValidationError when the fields required by the type are
    missing or not positive once rounded to cents, the stored precision.
    Fields belonging to other types are ignored.
    """
    try:
        offer_type = OfferType(offer_type)
    except ValueError:
        raise OfferValidationError(
            f"Unknown offer type: {offer_type}",
            {"field": "type", "allowed": [t.value for t in OfferType]},
        )

    if offer_type == OfferType.PERCENT_OFF:
        percent = _decimal_or_none(percent_off, "percent_off")
        percent = to_money(percent) if percent is not None else None
        if percent is None or percent <= 0:
            raise OfferValidationError(
                "Percent off value is required for PERCENT_OFF offers",
                {"field": "percent_off"},
            )
        if percent > 100:
            raise OfferValidationError("Percent off cannot exceed 100", {"field": "percent_off"})
        return PercentOff(percent=percent)

    if offer_type == OfferType.AMOUNT_OFF:
        amount = _decimal_or_none(amount_off, "amount_off")
        amount = to_money(amount) if amount is not None else None
        if amount is None or amount <= 0:
            raise OfferValidationError(
                "Amount off value is required for AMOUNT_OFF offers",
                {"field": "amount_off"},
            )
        return AmountOff(amount=amount)

    if not free_item_product_id:
        raise OfferValidationError(
            "Free item product ID is required for FREE_ITEM offers",
            {"field": "free_item_product_id"},
        )
    quantity = 1 if free_item_qty is None else int(free_item_qty)
    if quantity < 1:
        raise OfferValidationError("Free item quantity must be at least 1", {"field": "free_item_qty"})
    return FreeItem(product_id=free_item_product_id, quantity=quantity)


def validate_window(starts_at: Optional[datetime], ends_at: Optional[datetime]) -> None:
    if starts_at is not None and ends_at is not None and as_utc(starts_at) > as_utc(ends_at):
        raise OfferValidationError(
            "starts_at must not be later than ends_at",
            {"starts_at": starts_at.isoformat(), "ends_at": ends_at.isoformat()},
        )


# ==================== SCOPE ====================

@dataclass(frozen=True)
class ProductAttributes:
    """What the engine needs to know about a product."""
    category: Optional[str] = None
    collection: Optional[str] = None
    unit_price: Optional[Decimal] = None


@dataclass(frozen=True)
class ScopeSet:
    """
    Product ids, category labels and collection labels.

    Used both as an offer's scope and as the union of what a cart (or a
    single item) touches. An empty set matches nothing.
    """
    products: FrozenSet[uuid.UUID] = frozenset()
    categories: FrozenSet[str] = frozenset()
    collections: FrozenSet[str] = frozenset()

    @classmethod
    def of(
        cls,
        products: Iterable[uuid.UUID] = (),
        categories: Iterable[Optional[str]] = (),
        collections: Iterable[Optional[str]] = (),
    ) -> "ScopeSet":
        return cls(
            products=frozenset(p for p in products if p is not None),
            categories=frozenset(c for c in categories if c),
            collections=frozenset(c for c in collections if c),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.products or self.categories or self.collections)

    def union(self, other: "ScopeSet") -> "ScopeSet":
        return ScopeSet(
            products=self.products | other.products,
            categories=self.categories | other.categories,
            collections=self.collections | other.collections,
        )

    def intersects(self, other: "ScopeSet") -> bool:
        return bool(
            self.products & other.products
            or self.categories & other.categories
            or self.collections & other.collections
        )

    def covers(self, product_id: uuid.UUID, attributes: Optional[ProductAttributes]) -> bool:
        """True when a product falls in scope by id, category or collection."""
        if product_id in self.products:
            return True
        if attributes is None:
            return False
        return (
            (attributes.category is not None and attributes.category in self.categories)
            or (attributes.collection is not None and attributes.collection in self.collections)
        )


# ==================== OFFER ====================

@dataclass(frozen=True)
class OfferRule:
    """Immutable snapshot of an offer as the engine evaluates it."""
    id: uuid.UUID
    name: str
    reward: Reward
    scope: ScopeSet = field(default_factory=ScopeSet)
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_quantity: int = 0
    min_order_amount: Optional[Decimal] = None
    applies_to_any_qty: bool = False
    # Usage caps are carried for callers; the calculation never consults them.
    max_per_user: Optional[int] = None
    max_total_redemptions: Optional[int] = None
    is_stackable: bool = False
    priority: int = 0
    is_active: bool = True

    @property
    def type(self) -> OfferType:
        return self.reward.type

    def is_live(self, now: datetime) -> bool:
        """Active flag set and `now` inside the (inclusive) validity window."""
        if not self.is_active:
            return False
        if self.starts_at is not None and as_utc(self.starts_at) > now:
            return False
        if self.ends_at is not None and as_utc(self.ends_at) < now:
            return False
        return True


def evaluation_order(offers: Iterable[OfferRule]) -> List[OfferRule]:
    """Priority descending, then offer id ascending for equal priorities."""
    return sorted(offers, key=lambda offer: (-offer.priority, offer.id))


# ==================== CART ====================

@dataclass(frozen=True)
class CartLine:
    product_id: uuid.UUID
    quantity: int
    unit_price: Decimal

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"Cart quantity must be > 0 for product {self.product_id}")
        if self.unit_price < 0:
            raise ValueError(f"Unit price must be >= 0 for product {self.product_id}")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity


@dataclass(frozen=True)
class FreeItemGrant:
    product_id: uuid.UUID
    quantity: int


@dataclass(frozen=True)
class AppliedOffer:
    offer_id: uuid.UUID
    offer_name: str
    type: OfferType
    discount: Decimal
    free_items: Tuple[FreeItemGrant, ...] = ()


@dataclass(frozen=True)
class CartCalculationResult:
    applied_offers: Tuple[AppliedOffer, ...]
    total_discount: Decimal
    original_amount: Decimal
    final_amount: Decimal
    free_items: Tuple[FreeItemGrant, ...]
