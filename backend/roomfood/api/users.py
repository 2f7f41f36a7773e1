"""
Self-service profile endpoints
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.security import get_current_user
from roomfood.db.models import User
from roomfood.db.session import get_session
from roomfood.api.schemas import ProfileUpdate, UserRead

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserRead)
async def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Edit the caller's own profile; role and email are not editable here"""
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes:
        current_user.name = changes["name"]
        await session.commit()
        await session.refresh(current_user)
        logger.info(f"Updated profile of user {current_user.id}")
    return current_user
