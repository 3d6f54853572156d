"""Domain enumerations for the CMS data layer.

Enums represent fixed sets of domain values (e.g. tenant status, plan,
the entities that carry a tenant_id).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class TenantStatus(_ValuesMixin, str, Enum):
    """Tenant lifecycle status."""

    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"
    ARCHIVED = "ARCHIVED"


class TenantPlan(_ValuesMixin, str, Enum):
    """Subscription plan of a tenant."""

    FREE = "FREE"
    BASIC = "BASIC"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class ContentStatus(_ValuesMixin, str, Enum):
    """Publication status shared by content pages and news articles."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class TenantIsolationLevel(_ValuesMixin, str, Enum):
    """How loudly queries without a tenant filter are reported.

    strict and moderate log a warning for every unscoped read; relaxed
    turns the audit off. Reads are never blocked at any level.
    """

    STRICT = "strict"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class TenantScopedModel(_ValuesMixin, str, Enum):
    """Models whose reads are expected to filter on tenant_id.

    Values are lowercase model names; incoming names are lowercased before
    matching. Keep in sync with the ORM models that carry tenant_id.
    """

    USER = "user"
    ROLE = "role"
    PERMISSION = "permission"
    CONTENT = "content"
    MEDIA = "media"
    AUDIT_LOG = "auditlog"
    NEWS_ARTICLE = "newsarticle"
    MERCH_PRODUCT = "merchproduct"
    MERCH_CATEGORY = "merchcategory"
