"""linkauth - FastAPI Application.

Session-based authentication service providing:
- Username/password registration and login
- Magic links (passwordless)
- Forgot/reset password
- Cookie-backed server-side sessions with route-level access control
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkauth import __version__
from linkauth.config import AuthSettings, get_settings
from linkauth.database import create_engine, create_session_factory, init_db
from linkauth.errors import register_exception_handlers
from linkauth.middleware import AccessControlMiddleware, RequestLoggingMiddleware
from linkauth.routers import (
    admin_router,
    auth_router,
    health_router,
    magic_link_router,
    password_reset_router,
)

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> None:
    """Configure root logging and align the uvicorn loggers with it."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Creates missing tables on startup and disposes the engine on shutdown.
    """
    settings: AuthSettings = app.state.settings
    logger.info(f"Starting linkauth {__version__} ({settings.environment})")

    if settings.create_tables:
        await init_db(app.state.engine)
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down linkauth")
    await app.state.engine.dispose()


def create_app(settings: AuthSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="linkauth",
        description="Password, magic-link and password-reset authentication",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = create_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    register_exception_handlers(app)

    # Innermost first: 401/403 answers must pass back through CORS
    app.add_middleware(AccessControlMiddleware)

    cors_origins = settings.cors_origin_list
    if settings.base_url:
        cors_origins.append(settings.base_url)
    if cors_origins:
        logger.info(f"CORS origins: {cors_origins}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if settings.debug_requests:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(magic_link_router)
    app.include_router(password_reset_router)
    app.include_router(admin_router)

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "linkauth.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=settings.port,
        reload=False,
    )
