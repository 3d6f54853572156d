"""Merchandise catalog ORM models: categories, products, variants."""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    SoftDeleteMixin,
    TimestampMixin,
)


class MerchCategory(MultiTenantModel, Base):
    """Product category. Unique (tenant_id, slug)."""

    __tablename__ = "merch_category"

    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_merch_category_tenant_slug"),
    )


class MerchProduct(MultiTenantModel, Base):
    """Product. Price in the tenant's currency; variants may override it."""

    __tablename__ = "merch_product"

    category_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("merch_category.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_merch_product_tenant_slug"),
    )


class MerchVariant(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Product variant (size, color). Scoped to a tenant through its product."""

    __tablename__ = "merch_variant"

    product_id: Mapped[str] = mapped_column(
        String, ForeignKey("merch_product.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    price_override: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
