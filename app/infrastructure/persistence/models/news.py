"""News article ORM model."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import ContentStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import JsonType, MultiTenantModel


class NewsArticle(MultiTenantModel, Base):
    """News article. Table: news_article. Unique (tenant_id, slug)."""

    __tablename__ = "news_article"

    slug: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ContentStatus.DRAFT.value, index=True
    )
    author_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_news_article_tenant_slug"),
    )
