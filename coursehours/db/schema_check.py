"""
Create any missing tables for the course-hour store.

Runs at API startup (see CREATE_TABLES_ON_STARTUP) and can be run by hand:
  python -m coursehours.db.schema_check
"""
import asyncio
import logging
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models so Base.metadata knows every table
from coursehours.core import models  # noqa: F401
from coursehours.core.config import settings
from coursehours.core.logging import configure_logging
from coursehours.db.session import Base, engine

logger = logging.getLogger(__name__)


REQUIRED_TABLES: List[str] = [
    "students",
    "course_packages",
    "student_course_packages",
    "activity_rules",
    "consumption_records",
]


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """Create missing tables (idempotent). Returns the names of tables that were created."""
    async with db_engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    missing = [name for name in REQUIRED_TABLES if name not in existing]

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if missing:
        logger.info("Created missing tables: %s", ", ".join(missing))
    else:
        logger.info("All required tables already exist in the database.")
    return missing


async def main() -> None:
    configure_logging(settings.log_level)
    await ensure_tables(engine)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
