"""Shared helpers for publisher CLI command modules."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable
from pathlib import Path

import typer
from sqlalchemy.engine import make_url


def run(
    command: Iterable[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> None:
    cmd_list = list(command)
    typer.echo(f"-> {' '.join(cmd_list)}", err=True)
    completed = subprocess.run(cmd_list, cwd=cwd, env=env, check=False)
    if completed.returncode != 0:
        raise typer.Exit(code=completed.returncode)


def ensure_sqlite_parent(database_url: str) -> None:
    """Create the directory holding a file-backed SQLite database."""

    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    database = url.database or ""
    if not database or database == ":memory:":
        return
    Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def safe_database_url(database_url: str) -> str:
    return make_url(database_url).render_as_string(hide_password=True)


__all__ = ["ensure_sqlite_parent", "run", "safe_database_url"]
