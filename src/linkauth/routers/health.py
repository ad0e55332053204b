"""Health check endpoint."""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth import __version__
from linkauth.config import AuthSettings
from linkauth.database import get_db
from linkauth.dependencies import get_app_settings, get_email_service
from linkauth.services.email_service import EmailService

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    summary="Health check with configuration validation",
)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[AuthSettings, Depends(get_app_settings)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> dict:
    """Check auth service health and configuration.

    Verifies:
    - Database connectivity
    - Email transport configuration
    """
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        db_status = "error"

    checks = {"database": db_status}
    warnings = []
    overall_status = "ok" if db_status == "ok" else "degraded"

    if not email_service.is_configured:
        warnings.append(f"Email transport '{email_service.transport}' is missing credentials")
        checks["email"] = "warning"
        overall_status = "degraded"
    elif email_service.transport == "console":
        warnings.append("Emails are only logged (console transport)")
        checks["email"] = "warning"
    else:
        checks["email"] = "ok"

    return {
        "status": overall_status,
        "service": "linkauth",
        "version": __version__,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
        "warnings": warnings or None,
    }
