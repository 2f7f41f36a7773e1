from decimal import Decimal
from uuid import uuid4

import pytest

from roomfood.core.ratings import aggregate_ratings, recompute_listing_rating, round_rating
from roomfood.db.models import Listing, Review


def test_round_rating_half_up():
    assert round_rating(Decimal("4.25")) == 4.3
    assert round_rating(Decimal("4.35")) == 4.4
    assert round_rating(Decimal("4.24")) == 4.2


def test_aggregate_ratings_empty():
    assert aggregate_ratings([]) == (None, None)


def test_aggregate_ratings_single():
    assert aggregate_ratings([4]) == (4.0, 1)


def test_aggregate_ratings_rounds_halves_up():
    # round(4.25, 1) on floats gives 4.2
    assert aggregate_ratings([5, 4, 4, 4]) == (4.3, 4)
    assert aggregate_ratings([5, 5, 5, 4]) == (4.8, 4)


def test_aggregate_ratings_repeating_mean():
    assert aggregate_ratings([5, 4, 4]) == (4.3, 3)


@pytest.mark.asyncio
async def test_recompute_listing_rating_sets_and_unsets(session):
    listing = Listing(title="Room", owner_id=uuid4())
    session.add(listing)
    await session.commit()

    first = Review(listing_id=listing.id, user_id=uuid4(), rating=5)
    second = Review(listing_id=listing.id, user_id=uuid4(), rating=2)
    session.add_all([first, second])
    await session.flush()

    assert await recompute_listing_rating(session, listing.id) == (3.5, 2)
    await session.commit()
    await session.refresh(listing)
    assert listing.average_rating == 3.5
    assert listing.review_count == 2

    await session.delete(first)
    await session.delete(second)
    await session.flush()
    assert await recompute_listing_rating(session, listing.id) == (None, None)
    await session.commit()
    await session.refresh(listing)
    assert listing.average_rating is None
    assert listing.review_count is None
