#!/usr/bin/env python3
"""
Create (or reuse) a dev user and print a bearer token:  python scripts/dev_user.py
"""
import asyncio

from potato_timer.api.auth import create_access_token
from potato_timer.db import async_session, create_db_and_tables
from potato_timer.services.identity import resolve_user


async def main():
    phone = input("Phone number: ").strip()
    await create_db_and_tables()
    async with async_session() as db:
        user = await resolve_user(db, phone)
        print(f"Dev user {user.id} ({user.nickname})")
        print(f"Bearer {create_access_token(user.id)}")

if __name__ == "__main__":
    asyncio.run(main())
