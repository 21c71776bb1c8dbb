"""Publisher root CLI."""

from __future__ import annotations

import typer

from .api import app as api_app
from .db import app as db_app

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Publisher service CLI.",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


app.add_typer(api_app, name="api")
app.add_typer(db_app, name="db")

__all__ = ["app"]


if __name__ == "__main__":
    app()
