"""Tenant ORM model. Root entity for the multi-tenant hierarchy (no tenant_id)."""

from typing import Any

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import TenantPlan, TenantStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    JsonType,
    SoftDeleteMixin,
    TimestampMixin,
)


def _in_check(column: str, values: list[str]) -> str:
    quoted = ", ".join("'{}'".format(v.replace("'", "''")) for v in values)
    return f"{column} IN ({quoted})"


class Tenant(CuidMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Tenant. Table: tenant. Archived tenants keep their row with deleted_at set."""

    __tablename__ = "tenant"

    slug: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    domain: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=TenantStatus.PENDING.value, index=True
    )
    plan: Mapped[str] = mapped_column(
        String, nullable=False, default=TenantPlan.FREE.value
    )
    config: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)

    __table_args__ = (
        CheckConstraint(_in_check("status", TenantStatus.values()), name="tenant_status_check"),
        CheckConstraint(_in_check("plan", TenantPlan.values()), name="tenant_plan_check"),
    )
