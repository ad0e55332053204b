"""Command line entry point for linkauth administration.

Admin privilege has no HTTP API; it is granted and revoked here, directly
against the database.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linkauth import __version__
from linkauth.config import AuthSettings, get_settings
from linkauth.database import create_engine, create_session_factory, init_db
from linkauth.models.user import User
from linkauth.output import OutputFormatter
from linkauth.services.session_service import SessionService

T = TypeVar("T")


def run_with_db(settings: AuthSettings, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run ``work`` in a committed session on a short-lived engine."""

    async def _run() -> T:
        engine = create_engine(settings)
        try:
            async with create_session_factory(engine)() as db:
                result = await work(db)
                await db.commit()
                return result
        finally:
            await engine.dispose()

    return asyncio.run(_run())


@click.group()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.version_option(version=__version__, prog_name="linkauth")
@click.pass_context
def cli(ctx: click.Context, output_json: bool) -> None:
    """linkauth - session authentication service.

    Serve the API and manage accounts from the command line.
    Use --json flag for machine-readable output.
    """
    ctx.ensure_object(dict)
    ctx.obj["formatter"] = OutputFormatter(json_mode=output_json)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = get_settings()


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", type=int, default=None, help="Port (defaults to LINKAUTH_PORT)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings: AuthSettings = ctx.obj["settings"]
    uvicorn.run(
        "linkauth.main:create_app",
        factory=True,
        host=host,
        port=port or settings.port,
        reload=False,
    )


@cli.command("init-db")
@click.pass_context
def init_db_command(ctx: click.Context) -> None:
    """Create any missing tables."""
    formatter: OutputFormatter = ctx.obj["formatter"]
    settings: AuthSettings = ctx.obj["settings"]

    async def _init() -> None:
        engine = create_engine(settings)
        try:
            await init_db(engine)
        finally:
            await engine.dispose()

    asyncio.run(_init())
    formatter.success(message="Database initialized", data={"database": settings.database_url})


def _set_admin(ctx: click.Context, username: str, is_admin: bool) -> None:
    formatter: OutputFormatter = ctx.obj["formatter"]

    async def _update(db: AsyncSession) -> int:
        result = await db.execute(
            update(User).where(User.username == username).values(is_admin=is_admin)
        )
        return result.rowcount

    updated = run_with_db(ctx.obj["settings"], _update)
    if not updated:
        formatter.error(
            code="USER_NOT_FOUND",
            message=f"No user named '{username}'",
            suggestion="Run 'linkauth users' to list accounts",
        )
        return

    action = "granted to" if is_admin else "revoked from"
    formatter.success(
        message=f"Admin privilege {action} '{username}'",
        data={"username": username, "is_admin": is_admin},
    )


@cli.command("promote")
@click.argument("username")
@click.pass_context
def promote(ctx: click.Context, username: str) -> None:
    """Grant admin privilege to USERNAME."""
    _set_admin(ctx, username, True)


@cli.command("demote")
@click.argument("username")
@click.pass_context
def demote(ctx: click.Context, username: str) -> None:
    """Revoke admin privilege from USERNAME."""
    _set_admin(ctx, username, False)


@cli.command("users")
@click.pass_context
def users(ctx: click.Context) -> None:
    """List accounts."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    async def _list(db: AsyncSession) -> list[dict[str, Any]]:
        result = await db.execute(select(User).order_by(User.id))
        return [
            {
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "password": "yes" if user.has_password else "magic-link only",
                "is_admin": user.is_admin,
            }
            for user in result.scalars()
        ]

    rows = run_with_db(ctx.obj["settings"], _list)
    formatter.table(
        rows,
        columns=[
            ("id", "ID"),
            ("username", "Username"),
            ("email", "Email"),
            ("password", "Password"),
            ("is_admin", "Admin"),
        ],
        title="Users",
        message=f"{len(rows)} user(s)",
    )


@cli.command("purge-sessions")
@click.pass_context
def purge_sessions(ctx: click.Context) -> None:
    """Delete expired and revoked sessions."""
    formatter: OutputFormatter = ctx.obj["formatter"]
    settings: AuthSettings = ctx.obj["settings"]

    deleted = run_with_db(settings, lambda db: SessionService(db, settings).purge())
    formatter.success(message="Sessions purged", data={"deleted": deleted})


if __name__ == "__main__":
    cli()
