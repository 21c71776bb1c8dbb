"""`publisher api` command implementations."""

from __future__ import annotations

import sys

import typer

from publisher_api.settings import Settings
from publisher_common.paths import REPO_ROOT

from .common import run

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Publisher API CLI (dev, start).",
)


def _uvicorn_command(settings: Settings, *, host: str | None, port: int | None) -> list[str]:
    command = [
        sys.executable,
        "-m",
        "uvicorn",
        "publisher_api.asgi:app",
        "--host",
        host or settings.api_host,
        "--port",
        str(port or settings.api_port),
        "--log-level",
        settings.effective_api_log_level.lower(),
    ]
    if not settings.access_log_enabled:
        command.append("--no-access-log")
    return command


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="dev", help="Run the API with auto-reload.")
def dev(
    host: str | None = typer.Option(None, "--host", help="Bind address."),
    port: int | None = typer.Option(None, "--port", help="Bind port."),
) -> None:
    settings = Settings()
    command = _uvicorn_command(settings, host=host, port=port)
    command.extend(["--reload", "--reload-dir", "src"])
    typer.echo(f"API dev server: http://{host or settings.api_host}:{port or settings.api_port}")
    run(command, cwd=REPO_ROOT)


@app.command(name="start", help="Run the API server.")
def start(
    host: str | None = typer.Option(None, "--host", help="Bind address."),
    port: int | None = typer.Option(None, "--port", help="Bind port."),
    workers: int = typer.Option(1, "--workers", min=1, help="Worker processes."),
) -> None:
    settings = Settings()
    command = _uvicorn_command(settings, host=host, port=port)
    if workers > 1:
        command.extend(["--workers", str(workers)])
    typer.echo(f"Starting publisher API on http://{host or settings.api_host}:{port or settings.api_port}")
    run(command, cwd=REPO_ROOT)


__all__ = ["app"]
