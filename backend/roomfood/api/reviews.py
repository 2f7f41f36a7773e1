"""
Review endpoints. Every write recomputes the listing's averageRating and
reviewCount in the same transaction.
"""

from typing import List, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.exceptions import ConflictException, NotFoundException
from roomfood.core.security import ensure_owner_or_admin, get_current_user
from roomfood.db import crud
from roomfood.db.models import Listing, Review, User
from roomfood.db.session import get_session
from roomfood.api.schemas import (
    DeleteResponse,
    ListingSummary,
    ReviewCreate,
    ReviewRead,
    ReviewUpdate,
    UserSummary,
)

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/reviews", tags=["reviews"])


def review_view(
    review: Review,
    author: Optional[User] = None,
    listing: Optional[Listing] = None,
) -> ReviewRead:
    view = ReviewRead.model_validate(review)
    view.user = UserSummary.model_validate(author) if author else None
    view.listing = ListingSummary.model_validate(listing) if listing else None
    return view


async def _load_review(session: AsyncSession, review_id: UUID) -> Review:
    review = await crud.get_review_by_id(session, review_id)
    if not review:
        raise NotFoundException("Review not found")
    return review


@router.get("/listing/{listing_id}", response_model=List[ReviewRead], summary="Reviews of a listing")
async def list_listing_reviews(listing_id: UUID, session: AsyncSession = Depends(get_session)):
    rows = await crud.get_listing_reviews(session, listing_id)
    return [review_view(review, author) for review, author, _ in rows]


@router.post("", response_model=ReviewRead, summary="Review a listing")
async def create_review(
    payload: ReviewCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """One review per user per listing"""
    listing = await crud.get_listing_by_id(session, payload.listing_id)
    if not listing:
        raise NotFoundException("Listing not found")

    if await crud.get_user_review_for_listing(session, listing.id, current_user.id):
        raise ConflictException("You have already reviewed this listing", code="duplicate_review")

    review = await crud.create_review(
        session,
        listing_id=listing.id,
        user_id=current_user.id,
        rating=payload.rating,
        comment=payload.comment,
    )
    logger.info(
        "review_created",
        review_id=str(review.id),
        listing_id=str(listing.id),
        user_id=str(current_user.id),
        rating=review.rating,
    )
    return review_view(review, current_user)


@router.put("/{review_id}", response_model=ReviewRead, summary="Edit a review")
async def update_review(
    review_id: UUID,
    payload: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    review = await _load_review(session, review_id)
    ensure_owner_or_admin(current_user, review.user_id)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        review = await crud.update_review(session, review, changes)
        logger.info("review_updated", review_id=str(review.id), fields=sorted(changes))

    author = await crud.get_user_by_id(session, review.user_id)
    return review_view(review, author)


@router.delete("/{review_id}", response_model=DeleteResponse, summary="Delete a review")
async def delete_review(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    review = await _load_review(session, review_id)
    ensure_owner_or_admin(current_user, review.user_id)
    await crud.delete_review(session, review)
    return DeleteResponse(ok=True)
