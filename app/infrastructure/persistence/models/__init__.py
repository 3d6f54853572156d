"""Persistence models: ORM entities and mixins.

Importing this package registers every model on Base.metadata, which the
store's model registry reads.
"""

from app.infrastructure.persistence.models.audit_log import AuditLog
from app.infrastructure.persistence.models.content import Content, Media
from app.infrastructure.persistence.models.merch import (
    MerchCategory,
    MerchProduct,
    MerchVariant,
)
from app.infrastructure.persistence.models.mixins import (
    CuidMixin,
    MultiTenantModel,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
)
from app.infrastructure.persistence.models.news import NewsArticle
from app.infrastructure.persistence.models.permission import Permission
from app.infrastructure.persistence.models.role import Role, RolePermission
from app.infrastructure.persistence.models.tenant import Tenant
from app.infrastructure.persistence.models.user import User

__all__ = [
    "AuditLog",
    "Content",
    "CuidMixin",
    "Media",
    "MerchCategory",
    "MerchProduct",
    "MerchVariant",
    "MultiTenantModel",
    "NewsArticle",
    "Permission",
    "Role",
    "RolePermission",
    "SoftDeleteMixin",
    "Tenant",
    "TenantMixin",
    "TimestampMixin",
    "User",
]
