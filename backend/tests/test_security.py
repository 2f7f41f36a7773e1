"""
Tests for tokens, password hashing and role helpers
"""

import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from roomfood.core.exceptions import ForbiddenException, UnauthorizedException
from roomfood.core.security import (
    create_access_token,
    decode_access_token,
    ensure_owner_or_admin,
    get_password_hash,
    has_role,
    is_owner_or_admin,
    require_roles,
    verify_password,
)
from roomfood.core.settings import get_settings
from roomfood.db.models import UserRole


def make_user(role=UserRole.USER):
    return SimpleNamespace(id=uuid.uuid4(), role=role)


def test_password_hash_roundtrip():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_with_garbage_hash():
    assert not verify_password("secret123", "not-a-hash")


def test_token_carries_user_id():
    user_id = uuid.uuid4()
    assert decode_access_token(create_access_token(user_id)) == user_id


def test_token_expires_after_thirty_days():
    settings = get_settings()
    token = create_access_token(uuid.uuid4())
    claims = jwt.get_unverified_claims(token)
    assert settings.ACCESS_TOKEN_EXPIRE_DAYS == 30
    assert claims["type"] == "access"
    assert "exp" in claims


def test_expired_token_rejected():
    token = create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-5))
    with pytest.raises(UnauthorizedException) as exc_info:
        decode_access_token(token)
    assert exc_info.value.message == "Token expired"


def test_token_signed_with_other_secret_rejected():
    settings = get_settings()
    token = jwt.encode({"sub": str(uuid.uuid4()), "type": "access"}, "other-secret", algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(UnauthorizedException):
        decode_access_token(token)


def test_token_with_bad_subject_rejected():
    settings = get_settings()
    token = jwt.encode({"sub": "not-a-uuid", "type": "access"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(UnauthorizedException):
        decode_access_token(token)


def test_role_helpers():
    admin = make_user(UserRole.ADMIN)
    provider = make_user(UserRole.PROVIDER)

    assert has_role(provider, UserRole.PROVIDER, UserRole.ADMIN)
    assert not has_role(make_user(), UserRole.PROVIDER, UserRole.ADMIN)

    assert is_owner_or_admin(provider, provider.id)
    assert not is_owner_or_admin(provider, uuid.uuid4())
    assert is_owner_or_admin(admin, uuid.uuid4())
    assert not is_owner_or_admin(provider, None)


def test_ensure_owner_or_admin_raises_forbidden():
    with pytest.raises(ForbiddenException):
        ensure_owner_or_admin(make_user(UserRole.PROVIDER), uuid.uuid4())


@pytest.mark.asyncio
async def test_require_roles_dependency():
    checker = require_roles(UserRole.ADMIN)
    admin = make_user(UserRole.ADMIN)
    assert await checker(current_user=admin) is admin

    with pytest.raises(ForbiddenException) as exc_info:
        await checker(current_user=make_user(UserRole.PROVIDER))
    assert exc_info.value.status_code == 403
