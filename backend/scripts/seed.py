#!/usr/bin/env python3
"""
Seed a demo provider and one published room listing.

Safe to re-run: the provider is looked up by email and the listing by title.
"""

import asyncio
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import select

from roomfood.core.security import get_password_hash
from roomfood.db import crud
from roomfood.db.models import Listing, ListingType, UserRole
from roomfood.db.session import db_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_PROVIDER = {
    "email": "vendor@example.com",
    "password": "password123",
    "name": "Seed Vendor",
}

SAMPLE_LISTING = {
    "type": ListingType.ROOM,
    "title": "Sample Room near Campus",
    "description": "Furnished single room, 5 minutes from campus.",
    "address": "MG Road, Bengaluru",
    "lat": 12.9716,
    "lng": 77.5946,
    "price": 8000.0,
    "tags": ["student", "furnished"],
    "amenities": ["WiFi", "AC"],
    "published": True,
}


async def seed(session) -> None:
    provider = await crud.get_user_by_email(session, SEED_PROVIDER["email"])
    if not provider:
        provider = await crud.create_user(
            session,
            email=SEED_PROVIDER["email"],
            password_hash=get_password_hash(SEED_PROVIDER["password"]),
            name=SEED_PROVIDER["name"],
            role=UserRole.PROVIDER,
        )
        logger.info(f"Created seed provider {provider.email}")

    existing = await session.execute(
        select(Listing).where(
            Listing.owner_id == provider.id,
            Listing.title == SAMPLE_LISTING["title"],
        )
    )
    if existing.scalars().first():
        logger.info("Sample listing already present, skipping")
        return

    listing = await crud.create_listing(
        session,
        **SAMPLE_LISTING,
        images=[],
        owner_id=provider.id,
        host_name=provider.name,
    )
    logger.info(f"Created sample listing {listing.id}")


async def main() -> None:
    await db_manager.initialize()
    try:
        await db_manager.init_db()
        async with db_manager.get_session() as session:
            await seed(session)
    finally:
        await db_manager.close()


if __name__ == "__main__":
    asyncio.run(main())
