"""Application layer: services that coordinate several models.

Depends on the domain and on infrastructure through DataClient and the
cache protocol.
"""

from app.application.services.tenant_service import TenantService

__all__ = ["TenantService"]
