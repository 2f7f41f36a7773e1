"""
Booking lifecycle.

    requested --approve--> approved --cancel--> cancelled
    requested --reject---> rejected
    requested --cancel---> cancelled

Listing owners (or admins) approve and reject, requesters cancel. Each
transition is one conditional UPDATE guarded on the current status; zero
matched rows means the booking already left that status and raises
ConflictException. Overlapping date ranges are not checked and pending
requests never expire.
"""

from datetime import date
from typing import Dict, FrozenSet, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from roomfood.core.security import is_owner_or_admin
from roomfood.db import crud
from roomfood.db.models import Booking, BookingStatus, User

logger = structlog.get_logger(__name__)

# action -> (statuses it may leave, status it enters)
TRANSITIONS: Dict[str, Tuple[FrozenSet[BookingStatus], BookingStatus]] = {
    "approve": (frozenset({BookingStatus.REQUESTED}), BookingStatus.APPROVED),
    "reject": (frozenset({BookingStatus.REQUESTED}), BookingStatus.REJECTED),
    "cancel": (frozenset({BookingStatus.REQUESTED, BookingStatus.APPROVED}), BookingStatus.CANCELLED),
}


class BookingService:
    """Creates bookings and applies status transitions"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_booking(
        self,
        user: User,
        listing_id: UUID,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Booking:
        listing = await crud.get_listing_by_id(self.session, listing_id)
        if not listing:
            raise NotFoundException("Listing not found")
        if not listing.published:
            raise ValidationException("Listing is not available for booking", code="listing_unpublished")
        if listing.owner_id == user.id:
            raise ValidationException("You cannot book your own listing", code="self_booking")
        if from_date and to_date and from_date > to_date:
            raise ValidationException("fromDate must be on or before toDate", code="invalid_date_range")

        booking = Booking(
            listing_id=listing.id,
            user_id=user.id,
            from_date=from_date,
            to_date=to_date,
            status=BookingStatus.REQUESTED,
        )
        self.session.add(booking)
        await self.session.commit()
        await self.session.refresh(booking)

        logger.info(
            "booking_created",
            booking_id=str(booking.id),
            listing_id=str(listing.id),
            user_id=str(user.id),
        )
        return booking

    async def _load(self, booking_id: UUID) -> Booking:
        booking = await crud.get_booking_by_id(self.session, booking_id)
        if not booking:
            raise NotFoundException("Booking not found")
        return booking

    async def _transition(self, booking: Booking, action: str) -> Booking:
        allowed_from, target = TRANSITIONS[action]
        result = await self.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status.in_(list(allowed_from)))
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(booking)
            logger.warning(
                "booking_transition_rejected",
                booking_id=str(booking.id),
                action=action,
                status=BookingStatus(booking.status).value,
            )
            raise ConflictException(
                f"Cannot {action} a booking that is {BookingStatus(booking.status).value}",
                code="invalid_transition",
                details={"status": BookingStatus(booking.status).value},
            )

        await self.session.commit()
        await self.session.refresh(booking)
        logger.info(
            "booking_transitioned",
            booking_id=str(booking.id),
            action=action,
            status=target.value,
        )
        return booking

    async def respond(self, user: User, booking_id: UUID, approve: bool) -> Booking:
        """Approve or reject a requested booking; listing owner or admin only"""
        booking = await self._load(booking_id)
        listing = await crud.get_listing_by_id(self.session, booking.listing_id)
        owner_id = listing.owner_id if listing else None
        if not is_owner_or_admin(user, owner_id):
            raise ForbiddenException("Not allowed", code="not_listing_owner")
        return await self._transition(booking, "approve" if approve else "reject")

    async def cancel(self, user: User, booking_id: UUID) -> Booking:
        """Cancel a requested or approved booking; requester only"""
        booking = await self._load(booking_id)
        if booking.user_id != user.id:
            raise ForbiddenException("Not allowed", code="not_requester")
        return await self._transition(booking, "cancel")
