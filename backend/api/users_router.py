"""Administrator routes for registered users."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_admin
from backend.api.schemas import UserResponse
from backend.auth import AuthContext, list_users
from backend.config import utcnow
from backend.database import get_session
from backend.study.export import email_list, users_as_csv

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def get_users(
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    """All registered users, newest first."""
    return [UserResponse.model_validate(u) for u in await list_users(db)]


@router.get("/export.csv")
async def export_users(
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> Response:
    filename = f"users-{utcnow().date().isoformat()}.csv"
    return Response(
        content=users_as_csv(await list_users(db)),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/emails", response_class=PlainTextResponse)
async def export_emails(
    _: AuthContext = Depends(get_admin),
    db: AsyncSession = Depends(get_session),
) -> str:
    return email_list(await list_users(db))
