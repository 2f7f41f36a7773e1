from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from uuid import UUID
from datetime import date, datetime

from roomfood.core.settings import get_settings

# Import enums from models
from roomfood.db.models import UserRole, ListingType, BookingStatus


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

# ===== USER / AUTH SCHEMAS =====

class UserRead(APIModel):
    id: UUID = Field(alias="_id")
    email: str
    name: Optional[str] = None
    role: UserRole
    created_at: datetime

class UserSummary(APIModel):
    id: UUID = Field(alias="_id")
    name: Optional[str] = None
    email: str

class RegisterRequest(APIModel):
    name: Optional[str] = Field(None, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., max_length=128)
    role: UserRole = UserRole.USER
    admin_secret: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if '@' not in v:
            raise ValueError('Invalid email format')
        return v

    @field_validator('password')
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        min_length = get_settings().PASSWORD_MIN_LENGTH
        if len(v) < min_length:
            raise ValueError(f'Password must be at least {min_length} characters long')
        return v

class LoginRequest(APIModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()

class AuthResponse(APIModel):
    user: UserRead
    token: str

class ProfileUpdate(APIModel):
    name: Optional[str] = Field(None, max_length=100)

class RoleUpdate(APIModel):
    role: str

# ===== LISTING SCHEMAS =====

class ListingRead(APIModel):
    id: UUID = Field(alias="_id")
    type: ListingType
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    price: Optional[float] = None
    images: List[str] = []
    image_url: Optional[str] = None
    tags: List[str] = []
    amenities: List[str] = []
    published: bool
    owner_id: UUID = Field(alias="owner")
    host_name: Optional[str] = None
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    created_at: datetime
    distance: Optional[float] = None

class ListingSummary(APIModel):
    id: UUID = Field(alias="_id")
    type: ListingType
    title: str
    address: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    owner_id: UUID = Field(alias="owner")
    host_name: Optional[str] = None

class AdminListingRead(ListingRead):
    owner_user: Optional[UserSummary] = None

class DeleteResponse(APIModel):
    ok: bool = True

# ===== BOOKING SCHEMAS =====

class BookingCreate(APIModel):
    listing_id: UUID
    from_date: Optional[date] = None
    to_date: Optional[date] = None

class BookingRespond(APIModel):
    approve: bool

class BookingRead(APIModel):
    id: UUID = Field(alias="_id")
    listing_id: UUID
    user_id: UUID
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    status: BookingStatus
    created_at: datetime
    listing: Optional[ListingSummary] = None
    user: Optional[UserSummary] = None

# ===== REVIEW SCHEMAS =====

class ReviewCreate(APIModel):
    listing_id: UUID
    rating: int
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, v: int) -> int:
        if v < 1 or v > 5:
            raise ValueError('Rating must be between 1 and 5')
        return v

class ReviewUpdate(APIModel):
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and (v < 1 or v > 5):
            raise ValueError('Rating must be between 1 and 5')
        return v

class ReviewRead(APIModel):
    id: UUID = Field(alias="_id")
    listing_id: UUID
    user_id: UUID
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user: Optional[UserSummary] = None
    listing: Optional[ListingSummary] = None

# ===== ADMIN SCHEMAS =====

class AdminStats(APIModel):
    total_users: int
    total_listings: int
    total_bookings: int
    total_reviews: int
    active_providers: int
    active_users: int
