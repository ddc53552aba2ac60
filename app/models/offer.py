"""Promotional offer models for the wholesale marketplace.

An offer carries exactly one reward payload (percent off, amount off or a
free item) plus eligibility thresholds, a stacking policy and three scope
sets stored as child rows:
- offer_scope_products: product ids
- offer_scope_categories: category labels
- offer_scope_collections: collection labels
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Numeric
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.product import Product


class OfferType(str, Enum):
    """Reward type of an offer."""
    FREE_ITEM = "FREE_ITEM"
    PERCENT_OFF = "PERCENT_OFF"
    AMOUNT_OFF = "AMOUNT_OFF"


class Offer(Base):
    """
    Offer master.
    Scope rows are written and replaced together with the offer row.
    """
    __tablename__ = "offers"
    __table_args__ = (
        Index("ix_offers_window", "starts_at", "ends_at"),
        Index("ix_offers_active_priority", "is_active", "priority"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Identification
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment="FREE_ITEM, PERCENT_OFF, AMOUNT_OFF"
    )

    # ==================== REWARD PAYLOAD ====================
    # Only the columns of the active type are populated.

    percent_off: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="Discount % (e.g., 15.00 for 15%)"
    )
    amount_off: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Flat discount amount"
    )
    free_item_product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=True
    )
    free_item_qty: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Free units granted per qualifying block"
    )

    # ==================== ELIGIBILITY ====================

    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="null = open ended"
    )
    min_quantity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Total cart units required"
    )
    min_order_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Cart-wide monetary floor"
    )
    applies_to_any_qty: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="FREE_ITEM: pool qualifying units across lines instead of per line"
    )

    # Usage caps (recorded, not enforced by the calculation)
    max_per_user: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_total_redemptions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Stacking
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="Higher evaluated first")
    is_stackable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    free_item_product: Mapped[Optional["Product"]] = relationship("Product", lazy="selectin")
    scope_products: Mapped[List["OfferScopeProduct"]] = relationship(
        "OfferScopeProduct",
        back_populates="offer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin"
    )
    scope_categories: Mapped[List["OfferScopeCategory"]] = relationship(
        "OfferScopeCategory",
        back_populates="offer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin"
    )
    scope_collections: Mapped[List["OfferScopeCollection"]] = relationship(
        "OfferScopeCollection",
        back_populates="offer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Offer(name='{self.name}', type='{self.type}', priority={self.priority})>"


class OfferScopeProduct(Base):
    """Product id an offer applies to."""
    __tablename__ = "offer_scope_products"
    __table_args__ = (
        UniqueConstraint("offer_id", "product_id", name="uq_offer_scope_product"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    offer: Mapped["Offer"] = relationship("Offer", back_populates="scope_products")


class OfferScopeCategory(Base):
    """Category label an offer applies to."""
    __tablename__ = "offer_scope_categories"
    __table_args__ = (
        UniqueConstraint("offer_id", "category", name="uq_offer_scope_category"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    offer: Mapped["Offer"] = relationship("Offer", back_populates="scope_categories")


class OfferScopeCollection(Base):
    """Collection label an offer applies to."""
    __tablename__ = "offer_scope_collections"
    __table_args__ = (
        UniqueConstraint("offer_id", "collection", name="uq_offer_scope_collection"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    offer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    collection: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    offer: Mapped["Offer"] = relationship("Offer", back_populates="scope_collections")
