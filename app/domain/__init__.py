"""Domain layer: enums and exceptions.

No dependencies on infrastructure. Used by the application and
infrastructure layers.
"""

from app.domain.enums import (
    ContentStatus,
    TenantIsolationLevel,
    TenantPlan,
    TenantScopedModel,
    TenantStatus,
)
from app.domain.exceptions import (
    CmsException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
    TenantHasActiveRecordsException,
    TenantNotFoundException,
    TransactionTimeoutException,
    UnknownModelException,
    ValidationException,
)

__all__ = [
    # Enums
    "ContentStatus",
    "TenantIsolationLevel",
    "TenantPlan",
    "TenantScopedModel",
    "TenantStatus",
    # Exceptions
    "CmsException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
    "TenantHasActiveRecordsException",
    "TenantNotFoundException",
    "TransactionTimeoutException",
    "UnknownModelException",
    "ValidationException",
]
