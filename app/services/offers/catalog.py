"""Offer Catalog Store backed by SQLAlchemy.

Offer rows and their scope rows are always written in one transaction, and
rows are converted to immutable OfferRule snapshots before the engine sees
them.
"""
import logging
import uuid
from datetime import datetime
from math import ceil
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, delete, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.models.offer import (
    Offer, OfferType, OfferScopeProduct, OfferScopeCategory, OfferScopeCollection,
)
from app.services.offers.errors import OfferNotFoundError, OfferValidationError
from app.services.offers.rules import (
    AmountOff, FreeItem, OfferRule, PercentOff, Reward, ScopeSet, as_utc, build_reward,
)

logger = logging.getLogger(__name__)


def scope_of(offer: Offer) -> ScopeSet:
    return ScopeSet.of(
        products=(row.product_id for row in offer.scope_products),
        categories=(row.category for row in offer.scope_categories),
        collections=(row.collection for row in offer.scope_collections),
    )


def offer_to_rule(offer: Offer) -> OfferRule:
    """Snapshot an ORM offer (scalar fields and scope rows together)."""
    return OfferRule(
        id=offer.id,
        name=offer.name,
        description=offer.description,
        reward=build_reward(
            offer.type,
            percent_off=offer.percent_off,
            amount_off=offer.amount_off,
            free_item_product_id=offer.free_item_product_id,
            free_item_qty=offer.free_item_qty,
        ),
        scope=scope_of(offer),
        starts_at=as_utc(offer.starts_at),
        ends_at=as_utc(offer.ends_at),
        min_quantity=offer.min_quantity or 0,
        min_order_amount=offer.min_order_amount,
        applies_to_any_qty=bool(offer.applies_to_any_qty),
        max_per_user=offer.max_per_user,
        max_total_redemptions=offer.max_total_redemptions,
        is_stackable=bool(offer.is_stackable),
        priority=offer.priority or 0,
        is_active=bool(offer.is_active),
    )


def reward_columns(reward: Reward) -> Dict:
    """Column values for a reward; payload columns of other types are cleared."""
    columns = {
        "type": reward.type.value,
        "percent_off": None,
        "amount_off": None,
        "free_item_product_id": None,
        "free_item_qty": None,
    }
    if isinstance(reward, PercentOff):
        columns["percent_off"] = reward.percent
    elif isinstance(reward, AmountOff):
        columns["amount_off"] = reward.amount
    elif isinstance(reward, FreeItem):
        columns["free_item_product_id"] = reward.product_id
        columns["free_item_qty"] = reward.quantity
    return columns


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _scope_rows(offer_id: uuid.UUID, scope: ScopeSet) -> List:
    rows = []
    rows.extend(OfferScopeProduct(offer_id=offer_id, product_id=pid) for pid in sorted(scope.products))
    rows.extend(OfferScopeCategory(offer_id=offer_id, category=c) for c in sorted(scope.categories))
    rows.extend(OfferScopeCollection(offer_id=offer_id, collection=c) for c in sorted(scope.collections))
    return rows


class OfferCatalogStore:
    """Durable storage of offers and their scope associations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== READS ====================

    async def get_offer(self, offer_id: uuid.UUID) -> Offer:
        result = await self.db.execute(
            select(Offer)
            .where(Offer.id == offer_id)
            .execution_options(populate_existing=True)
        )
        offer = result.scalar_one_or_none()
        if not offer:
            raise OfferNotFoundError("Offer not found", {"offer_id": str(offer_id)})
        return offer

    async def get_offers(self, offer_ids: Sequence[uuid.UUID]) -> List[Offer]:
        """Offers by id, in the order given."""
        if not offer_ids:
            return []
        result = await self.db.execute(select(Offer).where(Offer.id.in_(list(offer_ids))))
        by_id = {offer.id: offer for offer in result.scalars().all()}
        return [by_id[oid] for oid in offer_ids if oid in by_id]

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
        """Admin listing. Returns (offers, total, pages)."""
        filters = []
        if offer_type:
            filters.append(Offer.type == OfferType(offer_type).value)
        if is_active is not None:
            filters.append(Offer.is_active == is_active)
        if start_date:
            filters.append(or_(Offer.starts_at.is_(None), Offer.starts_at >= start_date))
        if end_date:
            filters.append(or_(Offer.ends_at.is_(None), Offer.ends_at <= end_date))
        if search:
            pattern = f"%{_escape_like(search)}%"
            filters.append(or_(
                Offer.name.ilike(pattern, escape="\\"),
                Offer.description.ilike(pattern, escape="\\"),
            ))

        query = select(Offer)
        count_query = select(func.count(Offer.id))
        if filters:
            query = query.where(and_(*filters))
            count_query = count_query.where(and_(*filters))

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = (
            query.order_by(Offer.priority.desc(), Offer.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total, ceil(total / limit) if total else 0

    async def list_active_offers_matching(self, now: datetime, scope: ScopeSet) -> List[OfferRule]:
        """
        Active, in-window offers with at least one scope row in `scope`.

        Offers and all of their scope rows come back from a single statement.
        A stored offer whose payload no longer validates is skipped with a
        warning instead of failing the calculation.
        """
        matches = []
        if scope.products:
            matches.append(Offer.id.in_(
                select(OfferScopeProduct.offer_id)
                .where(OfferScopeProduct.product_id.in_(sorted(scope.products)))
            ))
        if scope.categories:
            matches.append(Offer.id.in_(
                select(OfferScopeCategory.offer_id)
                .where(OfferScopeCategory.category.in_(sorted(scope.categories)))
            ))
        if scope.collections:
            matches.append(Offer.id.in_(
                select(OfferScopeCollection.offer_id)
                .where(OfferScopeCollection.collection.in_(sorted(scope.collections)))
            ))
        if not matches:
            return []

        stmt = (
            select(Offer)
            .where(
                and_(
                    Offer.is_active == True,
                    or_(Offer.starts_at.is_(None), Offer.starts_at <= now),
                    or_(Offer.ends_at.is_(None), Offer.ends_at >= now),
                    or_(*matches),
                )
            )
            .options(
                joinedload(Offer.free_item_product),
                joinedload(Offer.scope_products),
                joinedload(Offer.scope_categories),
                joinedload(Offer.scope_collections),
            )
            .order_by(Offer.priority.desc(), Offer.id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)

        rules = []
        for offer in result.unique().scalars().all():
            try:
                rules.append(offer_to_rule(offer))
            except OfferValidationError as e:
                logger.warning(f"Offer {offer.id} skipped, stored payload is invalid: {e.message}")
        return rules

    # ==================== WRITES ====================

    async def create_offer_with_scopes(self, fields: Dict, scope: ScopeSet) -> Offer:
        """Insert the offer row and every scope row in one transaction."""
        offer = Offer(id=uuid.uuid4(), **fields)
        try:
            self.db.add(offer)
            self.db.add_all(_scope_rows(offer.id, scope))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Offer {offer.id} created ({offer.type}, priority {offer.priority})")
        return await self.get_offer(offer.id)

    async def update_offer(
        self,
        offer_id: uuid.UUID,
        fields: Dict,
        scope: Optional[ScopeSet] = None,
    ) -> Offer:
        """Replace scalar fields and, when given, the whole scope set."""
        offer = await self.get_offer(offer_id)
        try:
            for name, value in fields.items():
                setattr(offer, name, value)
            if scope is not None:
                await self._replace_scopes(offer_id, scope)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Offer {offer_id} updated (scopes replaced: {scope is not None})")
        return await self.get_offer(offer_id)

    async def replace_offer_scopes(self, offer_id: uuid.UUID, scope: ScopeSet) -> None:
        """Delete and re-insert the offer's scope rows atomically."""
        await self.get_offer(offer_id)
        try:
            await self._replace_scopes(offer_id, scope)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Offer {offer_id} scopes replaced")

    async def _replace_scopes(self, offer_id: uuid.UUID, scope: ScopeSet) -> None:
        await self.db.execute(delete(OfferScopeProduct).where(OfferScopeProduct.offer_id == offer_id))
        await self.db.execute(delete(OfferScopeCategory).where(OfferScopeCategory.offer_id == offer_id))
        await self.db.execute(delete(OfferScopeCollection).where(OfferScopeCollection.offer_id == offer_id))
        self.db.add_all(_scope_rows(offer_id, scope))

    async def delete_offer(self, offer_id: uuid.UUID) -> None:
        """Delete the offer; scope rows go with it."""
        offer = await self.get_offer(offer_id)
        try:
            await self.db.delete(offer)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Offer {offer_id} deleted")
