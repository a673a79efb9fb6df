"""API routes for accounts and sign-in."""

import logging

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backend import auth
from backend.api.deps import bearer, get_auth
from backend.api.schemas import (
    LoginRequest,
    MeResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordResetResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from backend.config import settings
from backend.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Create an account."""
    user = await auth.register(db, request.email, request.password, request.confirm_password)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange e-mail and password for a bearer token."""
    token = await auth.sign_in(db, request.email, request.password)
    return TokenResponse(access_token=token.token, expires_at=token.expires_at)


@router.post("/logout", status_code=204)
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_session),
) -> None:
    if credentials:
        await auth.sign_out(db, credentials.credentials)


@router.post("/password-reset", response_model=PasswordResetResponse)
async def password_reset(
    request: PasswordResetRequest,
    db: AsyncSession = Depends(get_session),
) -> PasswordResetResponse:
    """Start a password reset. The answer is the same whether or not the e-mail exists."""
    token = await auth.request_password_reset(db, request.email)
    if token is not None and settings.debug:
        return PasswordResetResponse(reset_token=token.token)
    return PasswordResetResponse()


@router.post("/password-reset/confirm", status_code=204)
async def password_reset_confirm(
    request: PasswordResetConfirm,
    db: AsyncSession = Depends(get_session),
) -> None:
    await auth.reset_password(db, request.token, request.password, request.confirm_password)


@router.get("/me", response_model=MeResponse)
async def me(ctx: auth.AuthContext = Depends(get_auth)) -> MeResponse:
    return MeResponse(
        id=ctx.user.id,
        email=ctx.user.email,
        email_verified=ctx.user.email_verified,
        created_at=ctx.user.created_at,
        is_admin=ctx.is_admin,
    )
