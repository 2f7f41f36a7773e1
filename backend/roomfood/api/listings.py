"""
Listing endpoints: public browse with optional "near me" filtering, and
provider-side create / update / delete with image uploads.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core import geo
from roomfood.core.exceptions import NotFoundException, ValidationException
from roomfood.core.listing_fields import (
    parse_bool,
    parse_coordinate,
    parse_csv_list,
    parse_listing_type,
    parse_price,
)
from roomfood.core.security import ensure_owner_or_admin, require_provider
from roomfood.core.settings import get_settings
from roomfood.core.uploads import save_images
from roomfood.db import crud
from roomfood.db.models import Listing, User
from roomfood.db.session import get_session
from roomfood.api.schemas import DeleteResponse, ListingRead

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/listings", tags=["listings"])


async def _load_listing(session: AsyncSession, listing_id: UUID) -> Listing:
    listing = await crud.get_listing_by_id(session, listing_id)
    if not listing:
        raise NotFoundException("Not found")
    return listing


@router.get("", response_model=List[ListingRead], summary="Browse listings")
async def list_listings(
    type: Optional[str] = Query(None, description="room or food"),
    published: Optional[str] = Query(None, description="'true' or 'false'; defaults to true"),
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: Optional[str] = Query(None, description="Search radius in km"),
    session: AsyncSession = Depends(get_session),
):
    """
    Newest-first listings. When both ``lat`` and ``lng`` parse, only listings
    within ``radius`` km (default 20) are returned, nearest first, each with
    its ``distance``.
    """
    settings = get_settings()
    candidates = await crud.get_listing_candidates(
        session,
        published=parse_bool(published, default=True),
        listing_type=parse_listing_type(type, default=None),
        limit=settings.LISTING_SCAN_LIMIT,
    )

    radius_km = geo.parse_query_coordinate(radius)
    if radius_km is None:
        radius_km = settings.DEFAULT_RADIUS_KM

    results = []
    for nearby in geo.nearest_first(
        candidates,
        geo.parse_query_coordinate(lat),
        geo.parse_query_coordinate(lng),
        radius_km,
    ):
        item = ListingRead.model_validate(nearby.item)
        item.distance = nearby.distance
        results.append(item)
    return results


@router.get("/provider", response_model=List[ListingRead], summary="Caller's own listings")
async def list_provider_listings(
    current_user: User = Depends(require_provider),
    session: AsyncSession = Depends(get_session),
):
    return await crud.get_owner_listings(session, current_user.id)


@router.post("", response_model=ListingRead, summary="Create a listing")
async def create_listing(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    amenities: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None, alias="imageUrl"),
    images: List[UploadFile] = File(default=[]),
    current_user: User = Depends(require_provider),
    session: AsyncSession = Depends(get_session),
):
    if not title or not title.strip():
        raise ValidationException("Title is required", code="missing_title")

    fields = dict(
        title=title.strip(),
        description=description,
        address=address,
        price=parse_price(price),
        type=parse_listing_type(type or category),
        lat=parse_coordinate(lat, "lat", 90),
        lng=parse_coordinate(lng, "lng", 180),
        tags=parse_csv_list(tags),
        amenities=parse_csv_list(amenities),
        published=parse_bool(published, default=True),
    )

    image_urls = await save_images(images)
    listing = await crud.create_listing(
        session,
        **fields,
        images=image_urls,
        image_url=image_urls[0] if image_urls else image_url,
        owner_id=current_user.id,
        host_name=current_user.name,
    )
    logger.info(f"Listing {listing.id} created by {current_user.id} with {len(image_urls)} images")
    return listing


@router.get("/{listing_id}", response_model=ListingRead, summary="Fetch one listing")
async def get_listing(listing_id: UUID, session: AsyncSession = Depends(get_session)):
    return await _load_listing(session, listing_id)


@router.put("/{listing_id}", response_model=ListingRead, summary="Update a listing")
async def update_listing(
    listing_id: UUID,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    amenities: Optional[str] = Form(None),
    published: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    current_user: User = Depends(require_provider),
    session: AsyncSession = Depends(get_session),
):
    """Partial update: only submitted fields change, new images are appended"""
    listing = await _load_listing(session, listing_id)
    ensure_owner_or_admin(current_user, listing.owner_id)

    changes = {}
    if title and title.strip():
        changes["title"] = title.strip()
    if description is not None:
        changes["description"] = description
    if address is not None:
        changes["address"] = address
    if price is not None:
        changes["price"] = parse_price(price)
    if type is not None:
        changes["type"] = parse_listing_type(type)
    if lat is not None:
        changes["lat"] = parse_coordinate(lat, "lat", 90)
    if lng is not None:
        changes["lng"] = parse_coordinate(lng, "lng", 180)
    if tags is not None:
        changes["tags"] = parse_csv_list(tags)
    if amenities is not None:
        changes["amenities"] = parse_csv_list(amenities)
    if published is not None:
        changes["published"] = parse_bool(published, default=listing.published)

    new_images = await save_images(images)
    if new_images:
        changes["images"] = list(listing.images or []) + new_images
        if not listing.image_url:
            changes["image_url"] = new_images[0]

    return await crud.update_listing(session, listing, changes)


@router.delete("/{listing_id}", response_model=DeleteResponse, summary="Delete a listing")
async def delete_listing(
    listing_id: UUID,
    current_user: User = Depends(require_provider),
    session: AsyncSession = Depends(get_session),
):
    listing = await _load_listing(session, listing_id)
    ensure_owner_or_admin(current_user, listing.owner_id)
    await crud.delete_listing(session, listing)
    return DeleteResponse(ok=True)
