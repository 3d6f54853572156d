"""Health check API schemas."""

from typing import Literal

from pydantic import BaseModel, Field

ComponentStatus = Literal["up", "down", "disabled"]


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready.

    The cache may be down while the service stays ready: callers fall back
    to the store.
    """

    status: Literal["ok", "degraded", "not_ready"] = Field(
        default="ok", description="Readiness status"
    )
    database: ComponentStatus = Field(..., description="Relational store status")
    cache: ComponentStatus = Field(..., description="Redis cache status")
