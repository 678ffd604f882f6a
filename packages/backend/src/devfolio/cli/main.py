"""Devfolio CLI — run the server, maintain the database, browse portfolios.

Usage:
    devfolio serve --reload                      # Run the API with uvicorn
    devfolio init-db                             # Create tables (dev; prod uses alembic)
    devfolio reconcile-projects                  # Re-link projects missing from creators' lists
    devfolio purge-otps                          # Delete expired pending registrations
    devfolio health                              # Ask a running server how it's doing
    devfolio projects alice                      # List alice's projects
    devfolio project alice my-project            # Show one project
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

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("DEVFOLIO_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Devfolio backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _fail(response: httpx.Response):
    """Print the API's error envelope and exit non-zero."""
    try:
        message = response.json().get("message", response.text)
    except ValueError:
        message = response.text
    click.secho(f"Error {response.status_code}: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="devfolio")
def main():
    """Devfolio — developer portfolios and project showcase."""


# ---------------------------------------------------------------------------
# Server and database
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: DEVFOLIO_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: DEVFOLIO_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from devfolio.config import settings

    uvicorn.run(
        "devfolio.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables directly from the models (development only)."""
    _run(_init_db_impl())
    click.secho("Tables created", fg="green")


async def _init_db_impl():
    from devfolio.db.engine import engine
    from devfolio.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


@main.command("reconcile-projects")
def reconcile_projects():
    """Re-link projects that are missing from their creator's project list."""
    repaired = _run(_maintenance_impl("reconcile"))
    click.echo(f"Repaired {repaired} project link(s)")


@main.command("purge-otps")
def purge_otps():
    """Delete pending registrations whose one-time code has expired."""
    purged = _run(_maintenance_impl("purge"))
    click.echo(f"Purged {purged} expired registration(s)")


async def _maintenance_impl(job: str) -> int:
    from devfolio.db.engine import async_session_factory, engine
    from devfolio.services.maintenance import (
        purge_expired_registrations,
        reconcile_project_links,
    )

    try:
        async with async_session_factory() as db:
            if job == "reconcile":
                return await reconcile_project_links(db)
            return await purge_expired_registrations(db)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# API client commands
# ---------------------------------------------------------------------------


@main.command()
def health():
    """Show the health of a running server."""
    _run(_health_impl())


async def _health_impl():
    async with _client() as c:
        try:
            r = await c.get("/api/v1/health")
        except httpx.ConnectError:
            click.secho(f"Backend not reachable at {_api_url()}", fg="red", err=True)
            sys.exit(1)
    data = r.json()
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(f"Status:   {data.get('status')}", fg=color)
    click.echo(f"Version:  {data.get('version')}")
    click.echo(f"Database: {data.get('database')}")


@main.command()
@click.argument("username")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def projects(username: str, as_json: bool):
    """List the projects on USERNAME's profile."""
    _run(_projects_impl(username, as_json))


async def _projects_impl(username: str, as_json: bool):
    async with _client() as c:
        r = await c.get(f"/api/v1/users/{username}/projects")
    if r.status_code != 200:
        _fail(r)

    items = r.json()["data"]["projectObjects"]
    if as_json:
        click.echo(_pretty_json(items))
        return
    if not items:
        click.echo(f"No projects found for {username}")
        return

    rows = [
        {
            "name": p["name"],
            "domain": p["domain"],
            "stars": p["stars"],
            "tech": ", ".join(p["techStacks"]),
            "owners": ", ".join(o["username"] for o in p["owners"]),
        }
        for p in items
    ]
    _print_table(rows, [
        ("NAME", "name", 24),
        ("DOMAIN", "domain", 14),
        ("STARS", "stars", 6),
        ("TECH", "tech", 28),
        ("OWNERS", "owners", 24),
    ])


@main.command()
@click.argument("username")
@click.argument("name")
def project(username: str, name: str):
    """Show project NAME from USERNAME's profile."""
    _run(_project_impl(username, name))


async def _project_impl(username: str, name: str):
    async with _client() as c:
        r = await c.get(f"/api/v1/users/{username}/projects/{name}")
    if r.status_code != 200:
        _fail(r)

    p = r.json()["data"]
    click.secho(p["name"], bold=True)
    click.echo(f"  {p['description']}")
    click.echo(f"  URL:     {p['url']}")
    click.echo(f"  Domain:  {p['domain']}")
    click.echo(f"  Stars:   {p['stars']}")
    click.echo(f"  Tech:    {', '.join(p['techStacks'])}")
    click.echo(f"  Owners:  {', '.join(o['username'] for o in p['owners'])}")
    if p["images"] or p["videos"]:
        click.echo(f"  Media:   {len(p['images'])} image(s), {len(p['videos'])} video(s)")


if __name__ == "__main__":
    main()
