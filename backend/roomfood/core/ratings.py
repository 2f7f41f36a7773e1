"""
Listing rating aggregation.

``Listing.average_rating`` and ``Listing.review_count`` are derived from the
current Review rows and are written nowhere else. Every review write calls
``recompute_listing_rating`` inside the same session before committing, so the
review row and the aggregate land in one transaction.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.db.models import Listing, Review

logger = structlog.get_logger(__name__)

ONE_DECIMAL = Decimal("0.1")


def round_rating(value: Decimal) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(value.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


def aggregate_ratings(ratings: Iterable[int]) -> Tuple[Optional[float], Optional[int]]:
    """Return ``(average, count)``, or ``(None, None)`` when there are no ratings."""
    values = list(ratings)
    if not values:
        return None, None
    mean = Decimal(sum(values)) / Decimal(len(values))
    return round_rating(mean), len(values)


async def recompute_listing_rating(session: AsyncSession, listing_id: UUID) -> Tuple[Optional[float], Optional[int]]:
    """
    Re-read every review of ``listing_id`` and store the aggregate on the listing.

    Does not commit. A missing listing is left alone; its reviews still exist
    as dangling rows.
    """
    result = await session.execute(
        select(Review.rating).where(Review.listing_id == listing_id)
    )
    average, count = aggregate_ratings(result.scalars().all())

    await session.execute(
        update(Listing)
        .where(Listing.id == listing_id)
        .values(average_rating=average, review_count=count)
        .execution_options(synchronize_session="fetch")
    )
    logger.info(
        "listing_rating_recomputed",
        listing_id=str(listing_id),
        average_rating=average,
        review_count=count,
    )
    return average, count
