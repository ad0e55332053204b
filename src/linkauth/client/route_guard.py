"""Client-side route guard.

Mirrors the server's access rules for navigation so a client never shows a
protected view before it knows who is signed in. This is a UX layer only:
the server remains the sole authority, so the session is fetched again on
every navigation and whenever the page becomes visible.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

LOGIN_VIEW = "/auth"
HOME_VIEW = "/"
RESET_PASSWORD_VIEW = "/reset-password"
MAGIC_LINK_VIEW = "/auth/verify"

# Emailed links land here; the token in the URL is the credential
ALWAYS_RENDERED_VIEWS = frozenset({RESET_PASSWORD_VIEW, MAGIC_LINK_VIEW, "/auth/reset-password"})
PUBLIC_VIEWS = frozenset({LOGIN_VIEW, "/verify", "/forgot-password", *ALWAYS_RENDERED_VIEWS})

SessionFetcher = Callable[[], Awaitable[dict[str, Any] | None]]


@dataclass(frozen=True)
class Loading:
    """Session state unknown; show a loading indicator."""


@dataclass(frozen=True)
class Render:
    path: str


@dataclass(frozen=True)
class Redirect:
    to: str


Decision = Loading | Render | Redirect


@dataclass(frozen=True)
class SessionState:
    loading: bool = True
    user: dict[str, Any] | None = None


def decide(path: str, state: SessionState, admin_views: Iterable[str] = ()) -> Decision:
    """Decide what to show for ``path`` given the known session state.

    ``path`` may carry a query string or fragment; only the path part is
    matched.
    """
    if state.loading:
        return Loading()

    view = urlsplit(path).path or HOME_VIEW
    if view in ALWAYS_RENDERED_VIEWS:
        return Render(path)

    if view in PUBLIC_VIEWS:
        if state.user is not None:
            return Redirect(HOME_VIEW)
        return Render(path)

    if state.user is None:
        return Redirect(LOGIN_VIEW)

    if view in admin_views and not state.user.get("isAdmin", False):
        return Redirect(LOGIN_VIEW)

    return Render(path)


class SessionProbe:
    """Fetch the current user from ``GET /api/user``.

    Args:
        client: An ``httpx.AsyncClient`` carrying the session cookie
    """

    def __init__(self, client: httpx.AsyncClient, path: str = "/api/user") -> None:
        self.client = client
        self.path = path

    async def __call__(self) -> dict[str, Any] | None:
        response = await self.client.get(self.path)
        if response.status_code == httpx.codes.OK:
            return response.json()
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            return None
        response.raise_for_status()
        return None


class RouteGuard:
    """Track the current view and the session behind it.

    Args:
        fetch_session: Async callable returning the current user or None
        admin_views: Views that also need ``isAdmin``
    """

    def __init__(self, fetch_session: SessionFetcher, admin_views: Iterable[str] = ()) -> None:
        self._fetch_session = fetch_session
        self.admin_views = frozenset(admin_views)
        self.state = SessionState()
        self.path = HOME_VIEW
        self._generation = 0

    @property
    def decision(self) -> Decision:
        return decide(self.path, self.state, self.admin_views)

    async def refresh(self) -> SessionState:
        """Fetch the session again.

        A result that arrives after a newer refresh was started is dropped,
        so a slow response can never overwrite a fresher one.
        """
        self._generation += 1
        generation = self._generation

        try:
            user = await self._fetch_session()
        except httpx.HTTPError as e:
            logger.warning(f"Session check failed, treating as signed out: {e}")
            user = None

        if generation == self._generation:
            self.state = SessionState(loading=False, user=user)
        return self.state

    async def navigate(self, path: str) -> Decision:
        """Move to ``path`` (link, back or forward) and re-check the session."""
        self.path = path
        await self.refresh()
        return self.decision

    async def on_visibility_change(self, visible: bool) -> Decision:
        """Re-check the session when the page becomes visible again."""
        if visible:
            await self.refresh()
        return self.decision
