"""Shared DB utilities: schema bootstrap for the chat tables."""
import asyncio
import logging

from core.logging_config import configure_logging
from core.settings import SETTINGS, use_database_ssl
from infra.resources import DatabaseResource

logger = logging.getLogger("chat.db")


async def create_schema(db: DatabaseResource) -> None:
    """Create the conversation and message tables if they do not exist."""
    # Importing the registry registers every entity on the shared metadata
    from api.shared.entities.registry import BaseEntity

    if db.engine is None:
        raise RuntimeError("Database not initialized. Call init() first.")
    async with db.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    logger.info("Database schema is up to date")


async def migrate() -> None:
    db = DatabaseResource(
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
        ssl=use_database_ssl(SETTINGS.APP, SETTINGS.DATABASE),
    )
    await db.init()
    try:
        await create_schema(db)
        logger.info("Migration completed successfully")
    except Exception:
        logger.exception("Migration failed")
        raise
    finally:
        await db.shutdown()


if __name__ == "__main__":
    configure_logging(SETTINGS.APP)
    asyncio.run(migrate())
