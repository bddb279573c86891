"""
Create the tracker, run and record tables

Usage:
    python scripts/init_db.py [DATABASE_URL]
"""

import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import create_engine, create_tables
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def init_database(url: str = None):
    engine = create_engine(url)
    logger.info("Connecting to database...")
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database(sys.argv[1] if len(sys.argv) > 1 else None))
