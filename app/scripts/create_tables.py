# app/scripts/create_tables.py
import asyncio

from app.core.logging import get_logger, setup_logging
from app.db.session import create_all_tables

logger = get_logger(__name__)


async def main() -> None:
    # create_all_tables() imports every model so Base.metadata is complete
    logger.info("Creating database tables...")
    try:
        await create_all_tables()
    except Exception:
        logger.exception("Failed to create database tables")
        raise
    logger.info("Database tables created successfully")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
