"""
CRUD operations for users, listings, bookings and reviews
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from roomfood.core.exceptions import ConflictException
from roomfood.core.ratings import recompute_listing_rating
from roomfood.db.models import User, UserRole, Listing, ListingType, Booking, Review

logger = logging.getLogger(__name__)

# ===== USER CRUD OPERATIONS =====

async def create_user(
    session: AsyncSession,
    email: str,
    password_hash: str,
    name: Optional[str] = None,
    role: UserRole = UserRole.USER,
) -> User:
    """Create a new user; duplicate emails raise ConflictException"""
    user = User(email=email, password_hash=password_hash, name=name, role=role)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictException("User exists", code="duplicate_email")
    await session.refresh(user)
    logger.info(f"Created user: {user.id} ({role.value})")
    return user

async def get_user_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    return await session.get(User, user_id)

async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == email)
    )
    return result.scalar_one_or_none()

async def get_users(session: AsyncSession) -> Sequence[User]:
    """All users, newest first"""
    result = await session.execute(
        select(User).order_by(desc(User.created_at))
    )
    return result.scalars().all()

async def update_user_role(session: AsyncSession, user: User, role: UserRole) -> User:
    user.role = role
    await session.commit()
    await session.refresh(user)
    logger.info(f"Changed role of user {user.id} to {role.value}")
    return user

async def delete_user(session: AsyncSession, user: User) -> None:
    """Hard delete; listings, bookings and reviews keep the dangling id"""
    await session.delete(user)
    await session.commit()
    logger.info(f"Deleted user: {user.id}")

# ===== LISTING CRUD OPERATIONS =====

async def create_listing(session: AsyncSession, **fields: Any) -> Listing:
    listing = Listing(**fields)
    session.add(listing)
    await session.commit()
    await session.refresh(listing)
    logger.info(f"Created listing: {listing.id}")
    return listing

async def get_listing_by_id(session: AsyncSession, listing_id: UUID) -> Optional[Listing]:
    return await session.get(Listing, listing_id)

async def get_listing_candidates(
    session: AsyncSession,
    published: bool = True,
    listing_type: Optional[ListingType] = None,
    limit: int = 500,
) -> Sequence[Listing]:
    """Newest-first listings matching the basic filters, capped at ``limit``"""
    query = select(Listing).where(Listing.published == published)
    if listing_type is not None:
        query = query.where(Listing.type == listing_type)
    result = await session.execute(
        query.order_by(desc(Listing.created_at)).limit(limit)
    )
    return result.scalars().all()

async def get_owner_listings(session: AsyncSession, owner_id: UUID) -> Sequence[Listing]:
    result = await session.execute(
        select(Listing)
        .where(Listing.owner_id == owner_id)
        .order_by(desc(Listing.created_at))
    )
    return result.scalars().all()

async def get_listings_with_owner(session: AsyncSession) -> List[Tuple[Listing, Optional[User]]]:
    """All listings with their owner (None once the owner is gone)"""
    result = await session.execute(
        select(Listing, User)
        .outerjoin(User, User.id == Listing.owner_id)
        .order_by(desc(Listing.created_at))
    )
    return list(result.tuples().all())

async def update_listing(session: AsyncSession, listing: Listing, changes: Dict[str, Any]) -> Listing:
    for field, value in changes.items():
        setattr(listing, field, value)
    await session.commit()
    await session.refresh(listing)
    logger.info(f"Updated listing {listing.id}: {sorted(changes)}")
    return listing

async def delete_listing(session: AsyncSession, listing: Listing) -> None:
    """Hard delete; bookings and reviews keep the dangling id"""
    await session.delete(listing)
    await session.commit()
    logger.info(f"Deleted listing: {listing.id}")

# ===== BOOKING CRUD OPERATIONS =====

def _booking_rows_query():
    requester = aliased(User)
    return (
        select(Booking, Listing, requester)
        .outerjoin(Listing, Listing.id == Booking.listing_id)
        .outerjoin(requester, requester.id == Booking.user_id)
        .order_by(desc(Booking.created_at))
    )

async def get_booking_by_id(session: AsyncSession, booking_id: UUID) -> Optional[Booking]:
    return await session.get(Booking, booking_id)

async def get_bookings_for_user(session: AsyncSession, user_id: UUID) -> List[Tuple[Booking, Optional[Listing], Optional[User]]]:
    """Bookings requested by ``user_id``, newest first"""
    result = await session.execute(_booking_rows_query().where(Booking.user_id == user_id))
    return list(result.tuples().all())

async def get_bookings_for_owner(session: AsyncSession, owner_id: UUID) -> List[Tuple[Booking, Optional[Listing], Optional[User]]]:
    """Bookings against listings owned by ``owner_id``, newest first"""
    result = await session.execute(_booking_rows_query().where(Listing.owner_id == owner_id))
    return list(result.tuples().all())

async def get_all_bookings(session: AsyncSession) -> List[Tuple[Booking, Optional[Listing], Optional[User]]]:
    result = await session.execute(_booking_rows_query())
    return list(result.tuples().all())

async def delete_booking(session: AsyncSession, booking: Booking) -> None:
    await session.delete(booking)
    await session.commit()
    logger.info(f"Deleted booking: {booking.id}")

# ===== REVIEW CRUD OPERATIONS =====

def _review_rows_query():
    return (
        select(Review, User, Listing)
        .outerjoin(User, User.id == Review.user_id)
        .outerjoin(Listing, Listing.id == Review.listing_id)
        .order_by(desc(Review.created_at))
    )

async def get_review_by_id(session: AsyncSession, review_id: UUID) -> Optional[Review]:
    return await session.get(Review, review_id)

async def get_listing_reviews(session: AsyncSession, listing_id: UUID) -> List[Tuple[Review, Optional[User], Optional[Listing]]]:
    """Reviews of ``listing_id`` with their authors, newest first"""
    result = await session.execute(_review_rows_query().where(Review.listing_id == listing_id))
    return list(result.tuples().all())

async def get_all_reviews(session: AsyncSession) -> List[Tuple[Review, Optional[User], Optional[Listing]]]:
    result = await session.execute(_review_rows_query())
    return list(result.tuples().all())

async def get_user_review_for_listing(session: AsyncSession, listing_id: UUID, user_id: UUID) -> Optional[Review]:
    result = await session.execute(
        select(Review).where(Review.listing_id == listing_id, Review.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def create_review(
    session: AsyncSession,
    listing_id: UUID,
    user_id: UUID,
    rating: int,
    comment: Optional[str] = None,
) -> Review:
    """
    Insert a review and refresh the listing aggregate in one commit.

    The (listing, user) unique constraint backs up the caller's existence
    check; losing that race also surfaces as ConflictException.
    """
    review = Review(listing_id=listing_id, user_id=user_id, rating=rating, comment=comment)
    session.add(review)
    try:
        await session.flush()
        await recompute_listing_rating(session, listing_id)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictException("You have already reviewed this listing", code="duplicate_review")
    await session.refresh(review)
    return review

async def update_review(session: AsyncSession, review: Review, changes: Dict[str, Any]) -> Review:
    for field, value in changes.items():
        setattr(review, field, value)
    await session.flush()
    await recompute_listing_rating(session, review.listing_id)
    await session.commit()
    await session.refresh(review)
    return review

async def delete_review(session: AsyncSession, review: Review) -> None:
    listing_id = review.listing_id
    await session.delete(review)
    await session.flush()
    await recompute_listing_rating(session, listing_id)
    await session.commit()
    logger.info(f"Deleted review {review.id} of listing {listing_id}")

# ===== STATISTICS =====

async def get_platform_stats(session: AsyncSession) -> Dict[str, int]:
    async def count(query) -> int:
        return (await session.scalar(query)) or 0

    return {
        "total_users": await count(select(func.count(User.id))),
        "total_listings": await count(select(func.count(Listing.id))),
        "total_bookings": await count(select(func.count(Booking.id))),
        "total_reviews": await count(select(func.count(Review.id))),
        "active_providers": await count(select(func.count(User.id)).where(User.role == UserRole.PROVIDER)),
        "active_users": await count(select(func.count(User.id)).where(User.role == UserRole.USER)),
    }
