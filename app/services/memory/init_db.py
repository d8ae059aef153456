"""Database initialization script for chat, invoice and query-log tables."""

import asyncio
from sqlalchemy.ext.asyncio import AsyncEngine
from app.services.memory.models import Base
from app.services.memory.db import engine as default_engine
import logging

logger = logging.getLogger(__name__)


async def init_database(engine: AsyncEngine | None = None) -> bool:
    """Create tables that don't exist yet. Returns False instead of raising."""
    engine = engine or default_engine
    try:
        logger.info("Initializing database at %s", engine.url.render_as_string(hide_password=True))
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
        return True
    except Exception as e:
        logger.error("Failed to initialize database: %s", e, exc_info=True)
        return False


if __name__ == "__main__":
    asyncio.run(init_database())
