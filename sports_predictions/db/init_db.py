"""
Database initialization script.

Creates all tables for the configured DATABASE_URL. Run this when setting up
the application for the first time:

    $ python -m sports_predictions.db.init_db
"""

import asyncio
from typing import Optional

from sports_predictions.core.config import Settings, get_settings
from sports_predictions.db.session import Database


async def init_db(settings: Optional[Settings] = None) -> None:
    """Initialize the database by creating all tables."""
    database = Database(settings or get_settings())
    await database.init()
    try:
        await database.create_all()
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
