"""
Create all database tables.

Run once against a fresh database:

    python -m concierge.boundary.db.create_tables

Dependencies: sqlalchemy, concierge.boundary.db
System role: Schema bootstrap (no migration tooling)
"""

import asyncio
import logging

from concierge.boundary.db.base import Base
from concierge.boundary.db.connection import get_async_engine
from concierge.boundary.db import models  # noqa: F401  registers tables
from concierge.observability import configure_logging

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create every table registered on Base.metadata."""
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(create_tables())
