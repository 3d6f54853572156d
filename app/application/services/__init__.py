"""Application services: tenant lifecycle."""

from app.application.services.tenant_service import TenantService

__all__ = ["TenantService"]
