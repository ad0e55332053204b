"""API routers for auth service endpoints."""

from linkauth.routers.auth import router as auth_router
from linkauth.routers.magic_link import router as magic_link_router
from linkauth.routers.password_reset import router as password_reset_router
from linkauth.routers.admin import router as admin_router
from linkauth.routers.health import router as health_router

__all__ = [
    "auth_router",
    "magic_link_router",
    "password_reset_router",
    "admin_router",
    "health_router",
]
