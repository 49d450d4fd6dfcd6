"""Local Postgres container and schema commands."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
import time
from typing import Annotated

import typer
from rich.console import Console

db_app = typer.Typer(help="Manage the local document database.")
console = Console()

_CONTAINER_NAME = "docpage-db"
_IMAGE = "postgres:16"
_DEFAULT_PORT = 5432


def _docker_available() -> bool:
    return shutil.which("docker") is not None


def _require_docker() -> None:
    if not _docker_available():
        console.print("[red]Docker is not installed or not in PATH.[/red]")
        raise typer.Exit(1)


def _docker(*args: str, check: bool = False) -> subprocess.CompletedProcess[str]:
    return subprocess.run(["docker", *args], capture_output=True, text=True, check=check)


def _container_state() -> str | None:
    """Return the docker state ('running', 'exited', ...) or None when the container is absent."""
    result = _docker("inspect", "-f", "{{.State.Status}}", _CONTAINER_NAME)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _wait_for_ready(timeout: int = 30) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if _docker("exec", _CONTAINER_NAME, "pg_isready", "-U", "postgres").returncode == 0:
            return True
        time.sleep(1)
    return False


@db_app.command("start")
def start(
    port: Annotated[int, typer.Option(help="Host port to map.")] = _DEFAULT_PORT,
) -> None:
    """Start a Postgres container for local use."""
    _require_docker()

    state = _container_state()
    if state == "running":
        console.print(f"[green]{_CONTAINER_NAME} is already running.[/green]")
        return
    if state is not None:
        console.print(f"Restarting {_CONTAINER_NAME} ({state})...")
        _docker("start", _CONTAINER_NAME, check=True)
    else:
        console.print(f"Starting {_IMAGE} as {_CONTAINER_NAME}...")
        _docker(
            "run",
            "-d",
            "--name",
            _CONTAINER_NAME,
            "-p",
            f"{port}:5432",
            "-e",
            "POSTGRES_PASSWORD=postgres",
            _IMAGE,
            check=True,
        )

    if not _wait_for_ready():
        console.print("[red]Database did not become ready in time.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Database ready on localhost:{port}[/green]")


@db_app.command("stop")
def stop() -> None:
    """Stop and remove the database container."""
    _require_docker()

    if _container_state() is None:
        console.print(f"{_CONTAINER_NAME} not found.")
        return
    _docker("rm", "-f", _CONTAINER_NAME, check=True)
    console.print(f"[green]{_CONTAINER_NAME} removed.[/green]")


@db_app.command("status")
def status() -> None:
    """Show the container state."""
    _require_docker()

    state = _container_state()
    color = "green" if state == "running" else "yellow"
    console.print(f"{_CONTAINER_NAME}: [{color}]{state or 'not found'}[/{color}]")


@db_app.command("init")
def init() -> None:
    """Create the documents table in the database at DATABASE_URL."""
    from docpage.core.errors import StoreError
    from docpage.db.engine import get_engine
    from docpage.db.postgres import PostgresDocumentStore

    store = PostgresDocumentStore(get_engine())

    async def _run() -> None:
        try:
            await store.ensure_ready()
        finally:
            await store.dispose()

    try:
        asyncio.run(_run())
    except StoreError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    console.print("[green]Documents table ready.[/green]")
