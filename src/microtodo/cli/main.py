"""MicroTodo CLI: log in, manage tasks, run the services.

Usage:
    microtodo serve identity                     # Run the identity service
    microtodo serve tasks                        # Run the task service
    microtodo register alice alice@example.com   # Create an account
    microtodo login alice                        # Store a session token
    microtodo whoami                             # Show the stored session
    microtodo tasks list                         # Your tasks
    microtodo tasks add "Buy milk" -d "2 litres"
    microtodo tasks update 3 "Buy milk" --status COMPLETED
    microtodo tasks rm 3
    microtodo logout                             # Forget the session
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from pathlib import Path
from typing import Optional

import click

from microtodo import __version__
from microtodo.client.api import (
    DEFAULT_IDENTITY_URL,
    DEFAULT_TASK_URL,
    ApiError,
    MicroTodoClient,
    SessionExpired,
)
from microtodo.client.token_store import TokenStore

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_TOKEN_FILE = "~/.config/microtodo/session.json"
TASK_STATUSES = ("PENDING", "IN_PROGRESS", "COMPLETED")


def _token_file() -> Path:
    return Path(os.environ.get("MICROTODO_TOKEN_FILE", DEFAULT_TOKEN_FILE)).expanduser()


def _client() -> MicroTodoClient:
    """Build an API client pointed at both services."""
    return MicroTodoClient(
        TokenStore(_token_file()),
        identity_url=os.environ.get("MICROTODO_IDENTITY_URL", DEFAULT_IDENTITY_URL).rstrip("/"),
        task_url=os.environ.get("MICROTODO_TASK_URL", DEFAULT_TASK_URL).rstrip("/"),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Drive a coroutine to completion from a sync click command.

    If a loop is already running in this thread (an async caller invoking
    the CLI), the coroutine gets a fresh loop on a worker thread instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _call(coro):
    """Run an API call and turn API errors into a clean exit."""
    try:
        return _run(coro)
    except SessionExpired as e:
        click.secho(f"Session expired: {e.message}", fg="red", err=True)
        click.echo("Run `microtodo login` again.", err=True)
        sys.exit(1)
    except ApiError as e:
        click.secho(f"Error ({e.status_code}): {e.message}", fg="red", err=True)
        sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Fixed-width table; columns are (header, key, width)."""
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) or "-")[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _status_color(status: str) -> str:
    colors = {
        "PENDING": "yellow",
        "IN_PROGRESS": "cyan",
        "COMPLETED": "green",
    }
    return colors.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="microtodo")
def main():
    """MicroTodo: a two-service task manager."""


@main.command()
@click.argument("service", type=click.Choice(["identity", "tasks"]))
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", type=int, default=None, help="Port (default from settings)")
def serve(service: str, host: Optional[str], port: Optional[int]):
    """Run one of the services with uvicorn."""
    import uvicorn

    from microtodo.config import get_settings

    settings = get_settings()
    if service == "identity":
        from microtodo.identity.main import create_app

        default_port = settings.identity_port
    else:
        from microtodo.tasks.main import create_app

        default_port = settings.task_port

    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or default_port,
        log_level="debug" if settings.debug else "info",
    )


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("email")
@click.password_option()
@click.option("--first-name", default=None)
@click.option("--last-name", default=None)
def register(username: str, email: str, password: str,
             first_name: Optional[str], last_name: Optional[str]):
    """Create an account on the identity service."""

    async def _impl():
        async with _client() as api:
            return await api.register(username, email, password, first_name, last_name)

    user = _call(_impl())
    click.secho(f"Registered {user['username']} (id {user['id']})", fg="green")


@main.command()
@click.argument("username")
@click.option("--password", prompt=True, hide_input=True)
def login(username: str, password: str):
    """Log in and store the session token."""

    async def _impl():
        async with _client() as api:
            return await api.login(username, password)

    session = _call(_impl())
    click.secho(f"Logged in as {session.username} (id {session.user_id})", fg="green")


@main.command()
def logout():
    """Forget the stored session."""

    async def _impl():
        store = TokenStore(_token_file())
        was_authenticated = store.is_authenticated
        await store.clear()
        return was_authenticated

    if _run(_impl()):
        click.echo("Logged out.")
    else:
        click.echo("Not logged in.")


@main.command()
@click.option("--remote", is_flag=True, help="Ask the identity service instead of the local session")
def whoami(remote: bool):
    """Show who the stored session belongs to."""
    store = TokenStore(_token_file())
    if not store.is_authenticated:
        click.echo("Not logged in.")
        sys.exit(1)

    if not remote:
        session = _run(store.current_session())
        click.echo(f"{session.username} (id {session.user_id})")
        return

    async def _impl():
        async with _client() as api:
            return await api.me()

    click.echo(_pretty_json(_call(_impl())))


# ---------------------------------------------------------------------------
# microtodo tasks ...
# ---------------------------------------------------------------------------


@main.group()
def tasks():
    """Manage your tasks."""


@tasks.command("list")
@click.option("--status", "status_filter", type=click.Choice(TASK_STATUSES), default=None)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_tasks(status_filter: Optional[str], as_json: bool):
    """List your tasks."""

    async def _impl():
        async with _client() as api:
            return await api.list_tasks()

    rows = _call(_impl())
    if status_filter:
        rows = [r for r in rows if r["status"] == status_filter]

    if as_json:
        click.echo(_pretty_json(rows))
        return
    if not rows:
        click.echo("No tasks.")
        return
    _print_table(
        rows,
        [("ID", "id", 6), ("STATUS", "status", 12), ("TITLE", "title", 40), ("UPDATED", "updatedAt", 20)],
    )


@tasks.command("add")
@click.argument("title")
@click.option("--description", "-d", default=None)
@click.option("--status", type=click.Choice(TASK_STATUSES), default=None)
def add_task(title: str, description: Optional[str], status: Optional[str]):
    """Create a task."""

    async def _impl():
        async with _client() as api:
            return await api.create_task(title, description=description, status=status)

    task = _call(_impl())
    click.secho(f"Created task {task['id']}: {task['title']}", fg="green")


@tasks.command("show")
@click.argument("task_id", type=int)
def show_task(task_id: int):
    """Show one task."""

    async def _impl():
        async with _client() as api:
            return await api.get_task(task_id)

    task = _call(_impl())
    click.secho(f"#{task['id']} {task['title']}", bold=True)
    click.secho(f"  status:  {task['status']}", fg=_status_color(task["status"]))
    if task.get("description"):
        click.echo(f"  {task['description']}")
    click.echo(f"  created: {task['createdAt']}")
    click.echo(f"  updated: {task['updatedAt']}")


@tasks.command("update")
@click.argument("task_id", type=int)
@click.argument("title")
@click.option("--description", "-d", default=None)
@click.option("--status", type=click.Choice(TASK_STATUSES), default=None)
def update_task(task_id: int, title: str, description: Optional[str], status: Optional[str]):
    """Replace a task's title/description, optionally its status."""

    async def _impl():
        async with _client() as api:
            return await api.update_task(task_id, title, description=description, status=status)

    task = _call(_impl())
    click.secho(f"Updated task {task['id']} ({task['status']})", fg="green")


@tasks.command("rm")
@click.argument("task_id", type=int)
def remove_task(task_id: int):
    """Delete a task."""

    async def _impl():
        async with _client() as api:
            await api.delete_task(task_id)

    _call(_impl())
    click.echo(f"Deleted task {task_id}")


if __name__ == "__main__":
    main()
