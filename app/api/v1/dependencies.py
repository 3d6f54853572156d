"""Presentation-layer dependency injection.

Process-wide infrastructure is created in the lifespan and kept on
app.state; routes reach it only through these dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.domain.exceptions import SqlNotConfiguredException
from app.infrastructure.cache.json_cache import CacheService
from app.infrastructure.persistence.database import Database


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise SqlNotConfiguredException()
    return database


def get_cache(request: Request) -> CacheService | None:
    """Cache service, or None when Redis is disabled."""
    return getattr(request.app.state, "cache", None)


DatabaseDep = Annotated[Database, Depends(get_database)]
CacheDep = Annotated[CacheService | None, Depends(get_cache)]
