"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import AuthContext, resolve_user
from backend.database import get_session
from backend.study.store import SessionStore

bearer = HTTPBearer(auto_error=False)


async def get_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_session),
) -> AuthContext:
    """Resolve the bearer token into the caller's context."""
    token = credentials.credentials if credentials else None
    return await resolve_user(db, token)


async def get_admin(auth: AuthContext = Depends(get_auth)) -> AuthContext:
    auth.require_admin()
    return auth


def get_study_store(request: Request) -> SessionStore:
    return request.app.state.study_sessions
