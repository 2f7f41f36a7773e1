from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.bookings import BookingService
from roomfood.core.security import get_current_user, require_provider
from roomfood.db import crud
from roomfood.db.models import Booking, Listing, User
from roomfood.db.session import get_session
from roomfood.api.schemas import (
    BookingCreate,
    BookingRead,
    BookingRespond,
    ListingSummary,
    UserSummary,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def booking_view(
    booking: Booking,
    listing: Optional[Listing] = None,
    requester: Optional[User] = None,
) -> BookingRead:
    """Booking with its listing and requester embedded; missing rows stay null"""
    view = BookingRead.model_validate(booking)
    view.listing = ListingSummary.model_validate(listing) if listing else None
    view.user = UserSummary.model_validate(requester) if requester else None
    return view


@router.post("", response_model=BookingRead, summary="Request a booking")
async def create_booking(
    payload: BookingCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    booking = await BookingService(session).create_booking(
        current_user,
        payload.listing_id,
        from_date=payload.from_date,
        to_date=payload.to_date,
    )
    listing = await crud.get_listing_by_id(session, booking.listing_id)
    return booking_view(booking, listing, current_user)


@router.get("/user", response_model=List[BookingRead], summary="Caller's own booking requests")
async def list_my_bookings(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    rows = await crud.get_bookings_for_user(session, current_user.id)
    return [booking_view(*row) for row in rows]


@router.get("/requests", response_model=List[BookingRead], summary="Requests against the caller's listings")
async def list_incoming_requests(
    current_user: User = Depends(require_provider),
    session: AsyncSession = Depends(get_session),
):
    rows = await crud.get_bookings_for_owner(session, current_user.id)
    return [booking_view(*row) for row in rows]


@router.post("/{booking_id}/respond", response_model=BookingRead, summary="Approve or reject a request")
async def respond_to_booking(
    booking_id: UUID,
    payload: BookingRespond,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    booking = await BookingService(session).respond(current_user, booking_id, payload.approve)
    listing = await crud.get_listing_by_id(session, booking.listing_id)
    requester = await crud.get_user_by_id(session, booking.user_id)
    return booking_view(booking, listing, requester)


@router.post("/{booking_id}/cancel", response_model=BookingRead, summary="Cancel a booking")
async def cancel_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    booking = await BookingService(session).cancel(current_user, booking_id)
    listing = await crud.get_listing_by_id(session, booking.listing_id)
    return booking_view(booking, listing, current_user)
