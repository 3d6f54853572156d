"""Domain exceptions for the CMS data layer.

Defines exceptions that represent business rule violations and data-access
failures raised by this layer itself. Errors raised by the relational store
(constraint violations, connection failures) are not wrapped; they propagate
as the driver raised them.
"""

from typing import Any


class CmsException(Exception):
    """Base exception for all application errors.

    Presentation layers map these to responses using message, error_code,
    and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(CmsException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(CmsException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'content', 'tenant').
            resource_id: The ID (or filter) that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class TenantNotFoundException(CmsException):
    """Raised when a tenant does not exist or is already archived."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(
            f"Tenant not found: {tenant_id}",
            "TENANT_NOT_FOUND",
            {"tenant_id": tenant_id},
        )


class TenantHasActiveRecordsException(CmsException):
    """Raised when archiving a tenant that still owns active records."""

    def __init__(self, tenant_id: str, counts: dict[str, int]) -> None:
        """Initialize with the tenant and the non-zero counts that block archiving.

        Args:
            tenant_id: Tenant being archived.
            counts: Mapping of model name to number of active rows it still owns.
        """
        summary = ", ".join(f"{count} {name}" for name, count in counts.items())
        super().__init__(
            f"Cannot archive tenant {tenant_id}: still owns {summary}",
            "TENANT_HAS_ACTIVE_RECORDS",
            {"tenant_id": tenant_id, "counts": counts},
        )


class UnknownModelException(CmsException):
    """Raised when an operation names a model the store does not know."""

    def __init__(self, model: str) -> None:
        super().__init__(
            f"Unknown model: {model}",
            "UNKNOWN_MODEL",
            {"model": model},
        )


class SqlNotConfiguredException(CmsException):
    """Raised when a store operation runs before the database is connected."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )


class TransactionTimeoutException(CmsException):
    """Raised when one transaction attempt exceeds the connection timeout."""

    def __init__(self, timeout_seconds: float, attempt: int) -> None:
        super().__init__(
            f"Transaction attempt {attempt} timed out after {timeout_seconds:g}s",
            "TRANSACTION_TIMEOUT",
            {"timeout_seconds": timeout_seconds, "attempt": attempt},
        )
