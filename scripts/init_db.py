#!/usr/bin/env python3
"""
One-shot helper: create tables and seed system tags without starting the server.
    python scripts/init_db.py focus study fitness
"""
import asyncio
import sys

from potato_timer.db import async_session, create_db_and_tables
from potato_timer.services.tag_service import create_system_tag


async def main(tag_names):
    await create_db_and_tables()
    async with async_session() as db:
        for name in tag_names:
            tag = await create_system_tag(db, name)
            print(f"System tag ready: {tag.name} (id={tag.id})")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
    print("DB tables created.")
