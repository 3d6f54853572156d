"""API schemas (Pydantic models for request/response bodies)."""

from app.schemas.health import HealthResponse, ReadinessResponse

__all__ = ["HealthResponse", "ReadinessResponse"]
