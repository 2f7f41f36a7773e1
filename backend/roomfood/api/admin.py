"""
Admin management endpoints: platform stats, full listings of every entity,
hard deletes and role changes. Every route requires the admin role.
"""

from typing import List
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.exceptions import NotFoundException, ValidationException
from roomfood.core.security import require_admin
from roomfood.db import crud
from roomfood.db.models import User, UserRole
from roomfood.db.session import get_session
from roomfood.api.bookings import booking_view
from roomfood.api.reviews import review_view
from roomfood.api.schemas import (
    AdminListingRead,
    AdminStats,
    BookingRead,
    DeleteResponse,
    ReviewRead,
    RoleUpdate,
    UserRead,
    UserSummary,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return AdminStats(**await crud.get_platform_stats(session))


# ===== USERS =====

@router.get("/users", response_model=List[UserRead])
async def list_users(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await crud.get_users(session)


@router.put("/users/{user_id}/role", response_model=UserRead)
async def change_user_role(
    user_id: UUID,
    payload: RoleUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    try:
        role = UserRole(payload.role)
    except ValueError:
        raise ValidationException("Invalid role", code="invalid_role")

    user = await crud.get_user_by_id(session, user_id)
    if not user:
        raise NotFoundException("User not found")

    user = await crud.update_user_role(session, user, role)
    logger.info("user_role_changed", user_id=str(user.id), role=role.value, admin_id=str(admin.id))
    return user


@router.delete("/users/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: UUID,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    user = await crud.get_user_by_id(session, user_id)
    if not user:
        raise NotFoundException("User not found")
    await crud.delete_user(session, user)
    logger.info("user_deleted", user_id=str(user_id), admin_id=str(admin.id))
    return DeleteResponse(ok=True)


# ===== LISTINGS =====

@router.get("/listings", response_model=List[AdminListingRead])
async def list_listings(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Published and unpublished listings with their owner embedded"""
    views = []
    for listing, owner in await crud.get_listings_with_owner(session):
        view = AdminListingRead.model_validate(listing)
        view.owner_user = UserSummary.model_validate(owner) if owner else None
        views.append(view)
    return views


@router.delete("/listings/{listing_id}", response_model=DeleteResponse)
async def delete_listing(
    listing_id: UUID,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    listing = await crud.get_listing_by_id(session, listing_id)
    if not listing:
        raise NotFoundException("Listing not found")
    await crud.delete_listing(session, listing)
    logger.info("listing_deleted", listing_id=str(listing_id), admin_id=str(admin.id))
    return DeleteResponse(ok=True)


# ===== BOOKINGS =====

@router.get("/bookings", response_model=List[BookingRead])
async def list_bookings(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return [booking_view(*row) for row in await crud.get_all_bookings(session)]


@router.delete("/bookings/{booking_id}", response_model=DeleteResponse)
async def delete_booking(
    booking_id: UUID,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    booking = await crud.get_booking_by_id(session, booking_id)
    if not booking:
        raise NotFoundException("Booking not found")
    await crud.delete_booking(session, booking)
    logger.info("booking_deleted", booking_id=str(booking_id), admin_id=str(admin.id))
    return DeleteResponse(ok=True)


# ===== REVIEWS =====

@router.get("/reviews", response_model=List[ReviewRead])
async def list_reviews(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return [review_view(*row) for row in await crud.get_all_reviews(session)]


@router.delete("/reviews/{review_id}", response_model=DeleteResponse)
async def delete_review(
    review_id: UUID,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Removing a review re-aggregates its listing's rating"""
    review = await crud.get_review_by_id(session, review_id)
    if not review:
        raise NotFoundException("Review not found")
    await crud.delete_review(session, review)
    logger.info("review_deleted", review_id=str(review_id), admin_id=str(admin.id))
    return DeleteResponse(ok=True)
