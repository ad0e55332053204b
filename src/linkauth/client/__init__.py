"""Client helpers that mirror the server's access rules."""

from linkauth.client.route_guard import (
    Loading,
    Redirect,
    Render,
    RouteGuard,
    SessionProbe,
    SessionState,
    decide,
)

__all__ = [
    "Loading",
    "Redirect",
    "Render",
    "RouteGuard",
    "SessionProbe",
    "SessionState",
    "decide",
]
