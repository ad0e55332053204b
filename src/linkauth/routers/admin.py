"""Admin-only endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth.database import get_db
from linkauth.dependencies import get_session_service, require_admin
from linkauth.models.user import User
from linkauth.schemas.auth import AdminStatsResponse
from linkauth.services.session_service import SessionService

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    summary="Account and session counts",
)
async def stats(
    _admin: Annotated[User, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> AdminStatsResponse:
    users = await db.execute(select(func.count()).select_from(User))
    return AdminStatsResponse(
        users=users.scalar_one(),
        active_sessions=await sessions.count_active(),
    )
