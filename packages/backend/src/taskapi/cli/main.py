"""taskapi management CLI.

Usage:
    taskapi init-db          # Create tables from ORM metadata
    taskapi prune-tokens     # Delete expired refresh tokens
    taskapi serve            # Run the API with uvicorn
"""

from __future__ import annotations

import asyncio

import click

from taskapi.config import settings


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


@click.group()
def cli() -> None:
    """Manage the taskapi backend."""


@cli.command("init-db")
def init_db() -> None:
    """Create any missing tables."""
    from taskapi.db.engine import engine, init_models

    async def _init() -> None:
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    _run(_init())
    click.secho("Tables created.", fg="green")


@cli.command("prune-tokens")
def prune_tokens() -> None:
    """Delete refresh tokens whose expiration has passed."""
    from taskapi.db.engine import async_session_factory, engine
    from taskapi.services.credential_store import CredentialStore

    async def _prune() -> int:
        try:
            async with async_session_factory() as session:
                return await CredentialStore(session).purge_expired_refresh_tokens()
        finally:
            await engine.dispose()

    removed = _run(_prune())
    click.echo(f"Removed {removed} expired refresh token(s).")


@cli.command()
@click.option("--host", default=None, help="Bind address (default: TASKAPI_HOST).")
@click.option("--port", default=None, type=int, help="Port (default: TASKAPI_PORT).")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "taskapi.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
