from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import secrets
import structlog

from roomfood.core.exceptions import ConflictException, ForbiddenException, UnauthorizedException
from roomfood.core.rate_limit import auth_rate_limit, limiter
from roomfood.core.security import (
    create_access_token,
    get_current_user,
    get_password_hash,
    performance_timer,
    verify_password,
)
from roomfood.core.settings import get_settings
from roomfood.db import crud
from roomfood.db.models import User, UserRole
from roomfood.db.session import get_session
from roomfood.api.schemas import AuthResponse, LoginRequest, RegisterRequest, UserRead

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class AuthService:
    """Service class for handling authentication operations"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def register_user(self, payload: RegisterRequest) -> User:
        """Register a new user; the admin role needs the shared admin secret"""
        existing = await crud.get_user_by_email(self.session, payload.email)
        if existing:
            raise ConflictException("User exists", code="duplicate_email")

        if payload.role == UserRole.ADMIN:
            required = get_settings().ADMIN_SECRET
            if not payload.admin_secret or not secrets.compare_digest(payload.admin_secret, required):
                logger.warning("admin_registration_denied", email=payload.email)
                raise ForbiddenException(
                    "Invalid admin secret. Cannot create admin account.",
                    code="invalid_admin_secret",
                )

        return await crud.create_user(
            self.session,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            name=payload.name,
            role=payload.role,
        )

    async def authenticate(self, email: str, password: str) -> User:
        user = await crud.get_user_by_email(self.session, email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("login_failed", email=email)
            raise UnauthorizedException("Invalid credentials", code="invalid_credentials")
        return user


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(user=UserRead.model_validate(user), token=create_access_token(user.id))


@router.post("/register",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid input"},
        403: {"description": "Invalid admin secret"},
        409: {"description": "Email already registered"},
    },
    summary="User registration",
)
@limiter.limit(auth_rate_limit)
async def register(
    request: Request,
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user and sign them in"""
    async with performance_timer("user_registration"):
        user = await AuthService(session).register_user(payload)
        logger.info(
            "user_registration_success",
            user_id=str(user.id),
            role=user.role.value,
            ip_address=request.client.host if request.client else None,
        )
        return _auth_response(user)


@router.post("/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Email and password required"},
        401: {"description": "Invalid credentials"},
    },
    summary="User login",
)
@limiter.limit(auth_rate_limit)
async def login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
):
    """Verify credentials and issue a bearer token"""
    async with performance_timer("user_login"):
        user = await AuthService(session).authenticate(payload.email, payload.password)
        logger.info(
            "user_login_success",
            user_id=str(user.id),
            ip_address=request.client.host if request.client else None,
        )
        return _auth_response(user)


@router.get("/me", response_model=UserRead, summary="Get current user")
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user
