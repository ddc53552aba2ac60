import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Text, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType


class ProductStatus(str, Enum):
    """Product status enumeration."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DISCONTINUED = "DISCONTINUED"


class Product(Base):
    """
    Wholesale catalog product.

    Category and collection are plain labels (e.g. "Garlands" / "Christmas");
    offers are scoped against them by value.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index('ix_product_category_collection', 'category', 'collection'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Basic Info
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    category: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Category label, e.g. Garlands"
    )
    collection: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Seasonal collection label, e.g. Christmas"
    )

    # Pricing (stored as Decimal for precision)
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Current wholesale unit price"
    )
    moq: Mapped[int] = mapped_column(Integer, default=1, comment="Minimum order quantity")

    status: Mapped[str] = mapped_column(
        String(50),
        default=ProductStatus.ACTIVE.value,
        nullable=False,
        comment="DRAFT, ACTIVE, INACTIVE, DISCONTINUED"
    )

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

    def __repr__(self) -> str:
        return f"<Product(sku='{self.sku}', name='{self.name}')>"
