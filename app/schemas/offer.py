"""Offer schemas for API requests/responses."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.offer import Offer, OfferType
from app.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema
from app.services.offers.display import describe_offer
from app.services.offers.rules import CartCalculationResult


# ==================== SCOPES ====================

class OfferScopes(BaseModel):
    """Products, categories and collections an offer applies to."""
    product_ids: List[UUID] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    collections: List[str] = Field(default_factory=list)


# ==================== AUTHORING ====================

class OfferBase(BaseModel):
    """Base offer schema."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: OfferType

    # Reward payload; only the fields of `type` are used
    percent_off: Optional[Decimal] = Field(None, ge=0, le=100)
    amount_off: Optional[Decimal] = Field(None, ge=0)
    free_item_product_id: Optional[UUID] = None
    free_item_qty: Optional[int] = Field(None, ge=1)

    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_quantity: int = Field(0, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    applies_to_any_qty: bool = False

    max_per_user: Optional[int] = Field(None, ge=1)
    max_total_redemptions: Optional[int] = Field(None, ge=1)

    priority: int = 0
    is_stackable: bool = False
    is_active: bool = True


class OfferCreate(OfferBase, BaseCreateSchema):
    """Offer creation schema."""
    scopes: OfferScopes = Field(default_factory=OfferScopes)


class OfferUpdate(BaseUpdateSchema):
    """Offer update schema. `scopes`, when present, replaces the whole scope set."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[OfferType] = None
    percent_off: Optional[Decimal] = Field(None, ge=0, le=100)
    amount_off: Optional[Decimal] = Field(None, ge=0)
    free_item_product_id: Optional[UUID] = None
    free_item_qty: Optional[int] = Field(None, ge=1)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_quantity: Optional[int] = Field(None, ge=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    applies_to_any_qty: Optional[bool] = None
    max_per_user: Optional[int] = Field(None, ge=1)
    max_total_redemptions: Optional[int] = Field(None, ge=1)
    priority: Optional[int] = None
    is_stackable: Optional[bool] = None
    is_active: Optional[bool] = None
    scopes: Optional[OfferScopes] = None


# ==================== RESPONSES ====================

class ProductBrief(BaseResponseSchema):
    """Minimal product info for offer responses."""
    id: UUID
    sku: str
    name: str
    category: Optional[str] = None
    collection: Optional[str] = None


class OfferResponse(BaseResponseSchema):
    """Offer response schema."""
    id: UUID
    name: str
    description: Optional[str] = None
    type: OfferType
    percent_off: Optional[Decimal] = None
    amount_off: Optional[Decimal] = None
    free_item_product_id: Optional[UUID] = None
    free_item_qty: Optional[int] = None
    free_item_product: Optional[ProductBrief] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    min_quantity: int
    min_order_amount: Optional[Decimal] = None
    applies_to_any_qty: bool
    max_per_user: Optional[int] = None
    max_total_redemptions: Optional[int] = None
    priority: int
    is_stackable: bool
    is_active: bool
    scopes: OfferScopes
    display_text: str
    created_by_user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_offer(cls, offer: Offer, currency_symbol: str = "£") -> "OfferResponse":
        return cls(
            id=offer.id,
            name=offer.name,
            description=offer.description,
            type=offer.type,
            percent_off=offer.percent_off,
            amount_off=offer.amount_off,
            free_item_product_id=offer.free_item_product_id,
            free_item_qty=offer.free_item_qty,
            free_item_product=(
                ProductBrief.model_validate(offer.free_item_product)
                if offer.free_item_product else None
            ),
            starts_at=offer.starts_at,
            ends_at=offer.ends_at,
            min_quantity=offer.min_quantity,
            min_order_amount=offer.min_order_amount,
            applies_to_any_qty=offer.applies_to_any_qty,
            max_per_user=offer.max_per_user,
            max_total_redemptions=offer.max_total_redemptions,
            priority=offer.priority,
            is_stackable=offer.is_stackable,
            is_active=offer.is_active,
            scopes=OfferScopes(
                product_ids=sorted(row.product_id for row in offer.scope_products),
                categories=sorted(row.category for row in offer.scope_categories),
                collections=sorted(row.collection for row in offer.scope_collections),
            ),
            display_text=describe_offer(offer, currency_symbol),
            created_by_user_id=offer.created_by_user_id,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
        )


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OfferListResponse(BaseModel):
    """Paginated offer list."""
    items: List[OfferResponse]
    pagination: PaginationInfo


# ==================== DISCOVERY & CALCULATION ====================

class CartItem(BaseModel):
    """One cart line. Without unit_price the catalog price is used."""
    product_id: UUID
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)


class ApplicableOffersRequest(BaseModel):
    """Cart context (cart_items) or single-item context (product/category/collection)."""
    cart_items: Optional[List[CartItem]] = None
    product_id: Optional[UUID] = None
    category: Optional[str] = None
    collection: Optional[str] = None


class OffersByProductsRequest(BaseModel):
    product_ids: List[UUID] = Field(..., min_length=1)


class OffersByProductsResponse(BaseModel):
    offers: Dict[UUID, List[OfferResponse]]


class CartCalculationRequest(BaseModel):
    cart_items: List[CartItem] = Field(default_factory=list)


class FreeItemGrantResponse(BaseModel):
    product_id: UUID
    quantity: int


class AppliedOfferResponse(BaseModel):
    offer_id: UUID
    offer_name: str
    type: OfferType
    discount: Decimal
    free_items: List[FreeItemGrantResponse] = []


class CartCalculationResponse(BaseModel):
    """Result of applying offers to a cart."""
    applied_offers: List[AppliedOfferResponse]
    total_discount: Decimal
    original_amount: Decimal
    final_amount: Decimal
    free_items: List[FreeItemGrantResponse]

    @classmethod
    def from_result(cls, result: CartCalculationResult) -> "CartCalculationResponse":
        return cls(
            applied_offers=[
                AppliedOfferResponse(
                    offer_id=applied.offer_id,
                    offer_name=applied.offer_name,
                    type=applied.type,
                    discount=applied.discount,
                    free_items=[
                        FreeItemGrantResponse(product_id=g.product_id, quantity=g.quantity)
                        for g in applied.free_items
                    ],
                )
                for applied in result.applied_offers
            ],
            total_discount=result.total_discount,
            original_amount=result.original_amount,
            final_amount=result.final_amount,
            free_items=[
                FreeItemGrantResponse(product_id=g.product_id, quantity=g.quantity)
                for g in result.free_items
            ],
        )
