"""Permission ORM model. A (resource, action) pair per tenant."""

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import MultiTenantModel


class Permission(MultiTenantModel, Base):
    """Permission. Table: permission. Unique (tenant_id, resource, action)."""

    __tablename__ = "permission"

    name: Mapped[str] = mapped_column(String, nullable=False)
    resource: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "resource", "action", name="uq_permission_tenant_resource_action"
        ),
    )
