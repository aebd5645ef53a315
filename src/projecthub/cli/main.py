"""ProjectHub CLI — run the server and bootstrap a fresh install.

Usage:
    projecthub serve                                  # Run the API with uvicorn
    projecthub init-db                                # Create all tables
    projecthub seed-admin --email admin@example.com   # Bootstrap a global admin
    projecthub magic-link someone@example.com         # Ask the running API for a link

init-db and seed-admin talk to the database directly. magic-link goes
through the HTTP API, exactly like the web client does.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3001/api/v1"


def _api_url() -> str:
    return os.environ.get("PROJECTHUB_API_URL", DEFAULT_API_URL).rstrip("/")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


async def _create_tables() -> None:
    from projecthub.db.engine import engine
    from projecthub.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


async def _seed_admin(email: str, password: str, name: str) -> bool:
    """Create the bootstrap global administrator. Returns False if it exists."""
    from sqlalchemy import select

    from projecthub.auth.password import hash_password
    from projecthub.auth.roles import Role
    from projecthub.db.engine import async_session_factory, engine
    from projecthub.db.models import User

    try:
        async with async_session_factory() as db:
            existing = await db.execute(select(User).where(User.email == email))
            if existing.scalars().first():
                return False
            db.add(
                User(
                    email=email,
                    name=name,
                    password_hash=hash_password(password),
                    role=Role.GLOBAL_ADMINISTRATOR,
                )
            )
            await db.commit()
            return True
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="projecthub")
def cli():
    """ProjectHub — multi-tenant project management backend."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from projecthub.config import settings

    uvicorn.run(
        "projecthub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create all tables (use Alembic migrations in production)."""
    _run(_create_tables())
    click.secho("Tables created.", fg="green")


@cli.command("seed-admin")
@click.option("--email", default="admin@example.com", show_default=True)
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password for the new administrator",
)
@click.option("--name", default="Global Admin", show_default=True)
def seed_admin(email: str, password: str, name: str):
    """Create a global administrator that belongs to no tenant."""
    if len(password) < 8:
        click.secho("Error: password must be at least 8 characters", fg="red", err=True)
        sys.exit(1)

    created = _run(_seed_admin(email, password, name))
    if created:
        click.secho(f"Created global admin: {email}", fg="green")
    else:
        click.secho(f"User {email} already exists, nothing to do.", fg="yellow")


@cli.command("magic-link")
@click.argument("email")
def magic_link(email: str):
    """Request a magic link for EMAIL from the running API."""
    try:
        resp = httpx.post(f"{_api_url()}/auth/magic-link", json={"email": email}, timeout=10)
    except httpx.ConnectError:
        click.secho(f"Error: API not reachable at {_api_url()}", fg="red", err=True)
        sys.exit(1)

    if resp.status_code != 200:
        click.secho(f"Error {resp.status_code}: {resp.text}", fg="red", err=True)
        sys.exit(1)

    data = resp.json()
    if data.get("magicLink"):
        click.echo(data["magicLink"])
    else:
        click.echo(_pretty_json(data))


if __name__ == "__main__":
    cli()
