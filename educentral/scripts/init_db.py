#!/usr/bin/env python3
"""
Database initialization script.

Creates every table in the configured database and, unless ``--no-seed``
is given, inserts the sample data.

Usage:
    python -m educentral.scripts.init_db [--no-seed]
"""

import argparse
import asyncio
import sys

from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.database.init_db import close_database, initialize_database, session_scope
from educentral.seed import seed_sample_data
from educentral.storage.repository import DatabaseStorage

logger = app_logger.getChild("scripts.init_db")


async def async_main(seed: bool) -> None:
    """Initialize the database."""
    settings = get_settings()
    await initialize_database(
        database_url=settings.DATABASE_URL,
        echo=settings.SQL_ECHO,
        create_tables=True,
    )
    try:
        if seed:
            async with session_scope() as session:
                inserted = await seed_sample_data(DatabaseStorage(session))
            logger.info("Sample data inserted" if inserted else "Database already populated")
    finally:
        await close_database()
    logger.info("Database initialized successfully")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the EduCentral schema")
    parser.add_argument("--no-seed", action="store_true", help="Skip the sample data")
    args = parser.parse_args()

    try:
        asyncio.run(async_main(seed=not args.no_seed))
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
