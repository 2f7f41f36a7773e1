import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Index, CheckConstraint, UniqueConstraint, JSON
from sqlalchemy import Enum as SAEnum
from uuid import UUID as PyUUID


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class UserRole(str, Enum):
    USER = "user"
    PROVIDER = "provider"
    ADMIN = "admin"

class ListingType(str, Enum):
    ROOM = "room"
    FOOD = "food"

class BookingStatus(str, Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def _enum_column(enum_cls, name: str, default: Enum) -> Column:
    return Column(
        SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=default,
        server_default=default.value,
    )


# Models
# Cross-table ids carry no FOREIGN KEY constraints: deletes never cascade and
# references left behind resolve to None at read time.
class User(SQLModel, table=True):
    __tablename__ = "users"

    __table_args__ = (
        Index('idx_users_role', 'role'),
        Index('idx_users_created_at', 'created_at'),
        CheckConstraint('length(email) > 0', name='check_email_not_empty'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(
        index=True,
        unique=True,
        nullable=False,
        max_length=255,
        description="Login key, compared case-sensitively"
    )
    password_hash: str = Field(
        nullable=False,
        max_length=255,
        description="bcrypt hash, never serialized"
    )
    name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = Field(
        default=UserRole.USER,
        sa_column=_enum_column(UserRole, "userrole", UserRole.USER),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )


class Listing(SQLModel, table=True):
    __tablename__ = "listings"

    __table_args__ = (
        Index('idx_listings_owner_id', 'owner_id'),
        Index('idx_listings_published_type', 'published', 'type'),
        Index('idx_listings_created_at', 'created_at'),
        CheckConstraint('lat IS NULL OR (lat BETWEEN -90 AND 90)', name='check_valid_latitude'),
        CheckConstraint('lng IS NULL OR (lng BETWEEN -180 AND 180)', name='check_valid_longitude'),
        CheckConstraint('price IS NULL OR price > 0', name='check_valid_price'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    type: ListingType = Field(
        default=ListingType.ROOM,
        sa_column=_enum_column(ListingType, "listingtype", ListingType.ROOM),
    )
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    address: Optional[str] = Field(default=None, max_length=500)
    lat: Optional[float] = Field(default=None)
    lng: Optional[float] = Field(default=None)
    price: Optional[float] = Field(default=None)
    images: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    image_url: Optional[str] = Field(default=None, max_length=1000)
    tags: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    amenities: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    published: bool = Field(default=True)
    owner_id: PyUUID = Field(
        nullable=False,
        description="Creator; kept after the owner is deleted"
    )
    host_name: Optional[str] = Field(default=None, max_length=100)

    # Derived, written only by roomfood.core.ratings
    average_rating: Optional[float] = Field(default=None)
    review_count: Optional[int] = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"

    __table_args__ = (
        Index('idx_bookings_user_id', 'user_id'),
        Index('idx_bookings_listing_id', 'listing_id'),
        Index('idx_bookings_status', 'status'),
        Index('idx_bookings_created_at', 'created_at'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    listing_id: PyUUID = Field(
        nullable=False,
        description="Booked listing; may dangle after listing deletion"
    )
    user_id: PyUUID = Field(
        nullable=False,
        description="Requester"
    )
    from_date: Optional[date] = Field(default=None)
    to_date: Optional[date] = Field(default=None)
    status: BookingStatus = Field(
        default=BookingStatus.REQUESTED,
        sa_column=_enum_column(BookingStatus, "bookingstatus", BookingStatus.REQUESTED),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )


class Review(SQLModel, table=True):
    __tablename__ = "reviews"

    __table_args__ = (
        UniqueConstraint('listing_id', 'user_id', name='uq_reviews_listing_user'),
        Index('idx_reviews_listing_id', 'listing_id'),
        Index('idx_reviews_created_at', 'created_at'),
        CheckConstraint('rating >= 1 AND rating <= 5', name='check_valid_rating'),
    )

    id: PyUUID = Field(default_factory=uuid.uuid4, primary_key=True)
    listing_id: PyUUID = Field(nullable=False)
    user_id: PyUUID = Field(nullable=False)
    rating: int = Field(ge=1, le=5, description="Rating (1-5 stars)")
    comment: Optional[str] = Field(default=None, max_length=2000)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=utcnow),
    )
