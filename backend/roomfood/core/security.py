"""
Authentication and authorization.

Passwords are bcrypt-hashed through passlib, tokens are HS256 JWTs carrying the
user id in ``sub``. Every handler authorizes through ``require_roles`` and
``ensure_owner_or_admin`` so role checks live in one place.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from roomfood.core.exceptions import ForbiddenException, UnauthorizedException
from roomfood.core.settings import get_settings
from roomfood.db.models import User, UserRole
from roomfood.db.session import get_session

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

@asynccontextmanager
async def performance_timer(operation: str):
    """Context manager for timing operations"""
    start = time.time()
    try:
        yield
    finally:
        duration = time.time() - start
        logger.info(f"{operation} completed in {duration:.2f}s")

def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash"""
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(user_id: Any, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for ``user_id``"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> uuid.UUID:
    """Return the user id carried by ``token`` or raise UnauthorizedException"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedException("Token expired", code="token_expired")
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise UnauthorizedException("Invalid token", code="invalid_token")

    subject = payload.get("sub")
    if not subject or payload.get("type") != "access":
        raise UnauthorizedException("Invalid token", code="invalid_token")
    try:
        return uuid.UUID(subject)
    except ValueError:
        raise UnauthorizedException("Invalid token", code="invalid_token")

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the bearer token to a User"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("No token, authorization denied", code="missing_token")

    user_id = decode_access_token(credentials.credentials)
    user = await session.get(User, user_id)
    if not user:
        logger.warning(f"User not found for token: {user_id}")
        raise UnauthorizedException("Invalid token", code="invalid_token")
    return user

def has_role(user: User, *roles: UserRole) -> bool:
    return UserRole(user.role) in roles

def require_roles(*roles: UserRole):
    """Dependency factory rejecting callers whose role is not in ``roles``"""

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user, *roles):
            allowed = ", ".join(r.value for r in roles)
            raise ForbiddenException(f"Requires role: {allowed}", code="insufficient_role")
        return current_user

    return role_checker

require_provider = require_roles(UserRole.PROVIDER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)

def is_owner_or_admin(user: User, owner_id: Optional[uuid.UUID]) -> bool:
    return has_role(user, UserRole.ADMIN) or (owner_id is not None and owner_id == user.id)

def ensure_owner_or_admin(user: User, owner_id: Optional[uuid.UUID], message: str = "Not allowed") -> None:
    """Raise ForbiddenException unless ``user`` owns the resource or is an admin"""
    if not is_owner_or_admin(user, owner_id):
        raise ForbiddenException(message, code="not_owner")
