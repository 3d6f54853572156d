"""Content and media ORM models."""

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import ContentStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import JsonType, MultiTenantModel


class Content(MultiTenantModel, Base):
    """Generic content page. Table: content. Unique (tenant_id, slug)."""

    __tablename__ = "content"

    slug: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    # Localized blocks keyed by locale, e.g. {"en": {...}, "es": {...}}.
    body: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ContentStatus.DRAFT.value, index=True
    )
    author_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_content_tenant_slug"),)


class Media(MultiTenantModel, Base):
    """Uploaded file metadata. The object itself lives in external storage."""

    __tablename__ = "media"

    filename: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[str] = mapped_column(String, nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    storage_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    uploaded_by: Mapped[str | None] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
