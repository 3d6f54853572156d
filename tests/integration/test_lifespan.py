"""Tests for application startup and shutdown wiring."""

from fastapi import FastAPI

from app.core.lifespan import create_lifespan
from app.infrastructure.persistence.database import Database


async def test_lifespan_creates_and_disposes_database() -> None:
    """Startup attaches a connected Database; Redis stays off when disabled."""
    app = FastAPI()

    async with create_lifespan(app):
        assert isinstance(app.state.database, Database)
        assert app.state.cache is None
        assert await app.state.database.is_healthy() is True
