"""Keygate CLI — run the server and bootstrap accounts.

Usage:
    keygate serve                                  # Run the API (uvicorn)
    keygate init-db                                # Create the accounts table
    keygate create-account alice --email a@x.com   # Prompts for the password
    keygate list-accounts                          # Accounts + key prefixes
    keygate -c prod.env serve --port 9000          # Layer an env file

Every HTTP route requires an API key, so the first account has to be
created here, straight against the database.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import sys
from typing import Optional

import click

from keygate import __version__
from keygate.config import Settings
from keygate.log import configure_logging

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
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


async def _with_service(settings: Settings, fn):
    """Build a Database + AccountService, run ``fn(service)``, tear down."""
    from keygate.db.engine import Database
    from keygate.db.store import AccountStore
    from keygate.services.account_service import AccountService, build_hasher, build_issuer

    db = Database(settings.database_url)
    try:
        await db.create_tables()
        service = AccountService(
            AccountStore(db.session_factory),
            hasher=build_hasher(settings),
            issuer=build_issuer(settings),
            salt_length=settings.salt_length,
            key_attempts=settings.api_key_attempts,
        )
        return await fn(service)
    finally:
        await db.dispose()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="keygate")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Env file with KEYGATE_* settings",
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str]):
    """Keygate: accounts and API keys for a JSON API."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings(_env_file=config_path) if config_path else Settings()
    # Quiet by default; `serve` reconfigures from settings.
    configure_logging("warning")


# ---------------------------------------------------------------------------
# keygate serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (default from settings)")
@click.option("--port", type=int, help="Port (default from settings)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]):
    """Run the API server."""
    import uvicorn

    from keygate.main import create_app

    settings = _settings(ctx)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level,
    )


# ---------------------------------------------------------------------------
# keygate init-db
# ---------------------------------------------------------------------------


@main.command("init-db")
@click.pass_context
def init_db(ctx: click.Context):
    """Create the accounts table if it doesn't exist."""
    from keygate.db.engine import Database

    async def _init():
        db = Database(_settings(ctx).database_url)
        try:
            await db.create_tables()
        finally:
            await db.dispose()

    _run(_init())
    click.secho("Database ready.", fg="green")


# ---------------------------------------------------------------------------
# keygate create-account
# ---------------------------------------------------------------------------


@main.command("create-account")
@click.argument("user_id")
@click.option("--email", "-e", required=True, help="Contact email")
@click.option(
    "--password",
    "-p",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password (prompted if omitted)",
)
@click.pass_context
def create_account(ctx: click.Context, user_id: str, email: str, password: str):
    """Create an account and print its API key."""
    from pydantic import ValidationError

    from keygate.errors import KeygateError
    from keygate.schemas.account import AccountCreate

    try:
        body = AccountCreate(user_id=user_id, password=password, email=email)
    except ValidationError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    async def _create(service):
        return await service.create_account(body)

    try:
        account = _run(_with_service(_settings(ctx), _create))
    except KeygateError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Created account {account.user_id}", fg="green")
    click.echo(f"API key: {account.api_key}")
    click.secho("Store this key now. It authenticates every request.", fg="yellow")


# ---------------------------------------------------------------------------
# keygate list-accounts
# ---------------------------------------------------------------------------


@main.command("list-accounts")
@click.pass_context
def list_accounts(ctx: click.Context):
    """List accounts (API keys are shown by prefix only)."""

    async def _list(service):
        return await service.list_accounts()

    accounts = _run(_with_service(_settings(ctx), _list))
    if not accounts:
        click.echo("No accounts.")
        return

    rows = [
        {
            "user_id": a.user_id,
            "email": a.email,
            "key": f"{a.api_key[:10]}…",
        }
        for a in accounts
    ]
    _print_table(rows, [("USER", "user_id", 24), ("EMAIL", "email", 32), ("KEY", "key", 14)])


if __name__ == "__main__":
    main()
