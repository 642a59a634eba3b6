# scripts/init_db.py
import asyncio
import logging

from ordering.db import create_db_and_tables

log = logging.getLogger("init_db")


async def create_tables():
    await create_db_and_tables()
    log.info("All missing tables created.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_tables())
