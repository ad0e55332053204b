"""HTTP middleware for the auth service."""

from linkauth.middleware.access_control import AccessControlMiddleware, classify
from linkauth.middleware.request_logging import RequestLoggingMiddleware

__all__ = ["AccessControlMiddleware", "RequestLoggingMiddleware", "classify"]
