"""Core: config, constants, tenant context, and application bootstrap."""

from app.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
