"""
Offer API Endpoints for the Wholesale Marketplace

Admin authoring of promotional offers, storefront discovery of applicable
offers and cart discount calculation.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, HTTPException, status, Query

from app.api.deps import DB
from app.config import settings
from app.models.offer import OfferType
from app.schemas.offer import (
    OfferCreate,
    OfferUpdate,
    OfferResponse,
    OfferListResponse,
    PaginationInfo,
    ApplicableOffersRequest,
    OffersByProductsRequest,
    OffersByProductsResponse,
    CartCalculationRequest,
    CartCalculationResponse,
)
from app.services.offer_service import OfferService
from app.services.offers.errors import (
    OfferError, OfferNotFoundError, ProductLookupError,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/offers", tags=["Offers"])


def _http_error(exc: OfferError) -> HTTPException:
    if isinstance(exc, OfferNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ProductLookupError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, **exc.details},
    )


def _response(offer) -> OfferResponse:
    return OfferResponse.from_offer(offer, settings.OFFER_CURRENCY_SYMBOL)


# ==================== Admin Endpoints ====================

@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(data: OfferCreate, db: DB):
    """
    Create an offer.

    The type-specific payload is validated and the offer is stored together
    with all of its scopes or not at all.
    """
    try:
        offer = await OfferService(db).create_offer(data)
    except OfferError as e:
        raise _http_error(e)
    return _response(offer)


@router.get("", response_model=OfferListResponse)
async def list_offers(
    db: DB,
    type: Optional[OfferType] = Query(None, description="Filter by offer type"),
    is_active: Optional[bool] = None,
    start_date: Optional[datetime] = Query(None, description="Offers starting on/after this date"),
    end_date: Optional[datetime] = Query(None, description="Offers ending on/before this date"),
    search: Optional[str] = Query(None, description="Search name and description"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.OFFERS_PAGE_SIZE, ge=1, le=settings.OFFERS_MAX_PAGE_SIZE),
):
    """List offers, highest priority first."""
    offers, total, pages = await OfferService(db).list_offers(
        offer_type=type,
        is_active=is_active,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )
    return OfferListResponse(
        items=[_response(o) for o in offers],
        pagination=PaginationInfo(page=page, limit=limit, total=total, pages=pages),
    )


# ==================== Storefront Endpoints ====================

@router.get("/applicable", response_model=List[OfferResponse])
async def get_applicable_offers(
    db: DB,
    product_id: Optional[uuid.UUID] = None,
    category: Optional[str] = None,
    collection: Optional[str] = None,
):
    """
    Live offers for a single item (product detail or catalog view).

    Any combination of product_id, category and collection may be given;
    with none of them the result is empty.
    """
    try:
        offers = await OfferService(db).find_applicable_offers(
            product_id=product_id,
            category=category,
            collection=collection,
        )
    except OfferError as e:
        raise _http_error(e)
    return [_response(o) for o in offers]


@router.post("/applicable", response_model=List[OfferResponse])
async def find_applicable_offers(request: ApplicableOffersRequest, db: DB):
    """Live offers for a cart (cart_items) or a single item, in evaluation order."""
    try:
        offers = await OfferService(db).find_applicable_offers(
            cart_items=request.cart_items,
            product_id=request.product_id,
            category=request.category,
            collection=request.collection,
        )
    except OfferError as e:
        raise _http_error(e)
    return [_response(o) for o in offers]


@router.post("/by-products", response_model=OffersByProductsResponse)
async def find_offers_by_products(request: OffersByProductsRequest, db: DB):
    """Offers per product for badge display."""
    try:
        offers = await OfferService(db).find_offers_by_products(request.product_ids)
    except OfferError as e:
        raise _http_error(e)
    return OffersByProductsResponse(
        offers={pid: [_response(o) for o in items] for pid, items in offers.items()}
    )


@router.post("/calculate", response_model=CartCalculationResponse)
async def calculate_cart_offers(request: CartCalculationRequest, db: DB):
    """
    Apply offers to a cart.

    Returns the applied offers, total discount, original and final amounts
    and any free items granted.
    """
    try:
        result = await OfferService(db).calculate_cart_offers(request.cart_items)
    except OfferError as e:
        raise _http_error(e)
    return CartCalculationResponse.from_result(result)


# ==================== Single Offer Endpoints ====================

@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: uuid.UUID, db: DB):
    """Get offer by ID."""
    try:
        offer = await OfferService(db).get_offer(offer_id)
    except OfferNotFoundError as e:
        raise _http_error(e)
    return _response(offer)


@router.patch("/{offer_id}", response_model=OfferResponse)
async def update_offer(offer_id: uuid.UUID, data: OfferUpdate, db: DB):
    """Update an offer. Supplied scopes replace the existing ones."""
    try:
        offer = await OfferService(db).update_offer(offer_id, data)
    except OfferError as e:
        raise _http_error(e)
    return _response(offer)


@router.delete("/{offer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_offer(offer_id: uuid.UUID, db: DB):
    """Delete an offer and its scopes."""
    try:
        await OfferService(db).delete_offer(offer_id)
    except OfferNotFoundError as e:
        raise _http_error(e)
