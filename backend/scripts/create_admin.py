#!/usr/bin/env python3
"""
Create an admin account, or promote an existing account to admin.

Usage: python scripts/create_admin.py <email> <password>
"""

import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from roomfood.core.security import get_password_hash
from roomfood.db import crud
from roomfood.db.models import UserRole
from roomfood.db.session import db_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_admin(session, email: str, password: str):
    """Promote ``email`` if it exists, otherwise create "Admin User" with it"""
    user = await crud.get_user_by_email(session, email)
    if user:
        if user.role == UserRole.ADMIN:
            logger.info(f"{email} is already an admin")
            return user
        logger.info(f"Promoting {email} to admin")
        return await crud.update_user_role(session, user, UserRole.ADMIN)

    logger.info(f"Creating admin {email}")
    return await crud.create_user(
        session,
        email=email,
        password_hash=get_password_hash(password),
        name="Admin User",
        role=UserRole.ADMIN,
    )


async def main(email: str, password: str) -> None:
    await db_manager.initialize()
    try:
        await db_manager.init_db()
        async with db_manager.get_session() as session:
            user = await create_admin(session, email, password)
            logger.info(f"Admin ready: {user.email} ({user.id})")
    finally:
        await db_manager.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python scripts/create_admin.py <email> <password>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
