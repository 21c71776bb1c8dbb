"""`publisher db` command implementations."""

from __future__ import annotations

import typer
from sqlalchemy.orm import sessionmaker

from publisher_db.engine import build_engine, session_scope
from publisher_db.schema import create_schema, drop_schema
from publisher_db.settings import Settings

from .common import ensure_sqlite_parent, safe_database_url

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Database CLI (init, seed, reset).",
)


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="init", help="Create the authorization graph tables.")
def init() -> None:
    settings = Settings()
    ensure_sqlite_parent(settings.database_url)
    engine = build_engine(settings)
    try:
        create_schema(engine)
    finally:
        engine.dispose()
    typer.echo(f"schema ready: {safe_database_url(settings.database_url)}")


@app.command(name="seed", help="Load the sample divisions, users, roles and groups.")
def seed() -> None:
    from publisher_api.features.rbac.seed import seed_sample_graph

    settings = Settings()
    ensure_sqlite_parent(settings.database_url)
    engine = build_engine(settings)
    try:
        create_schema(engine)
        session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        with session_scope(session_factory) as session:
            graph = seed_sample_graph(session)
    finally:
        engine.dispose()
    typer.echo(
        f"seeded division {graph.division_id}: {len(graph.users)} users, "
        f"{len(graph.groups)} groups, {len(graph.roles)} roles, {len(graph.games)} games"
    )


@app.command(name="reset", help="Drop and recreate every table (destructive).")
def reset(
    yes: bool = typer.Option(False, "--yes", help="Confirm destructive reset."),
) -> None:
    if not yes:
        typer.echo("error: reset requires --yes", err=True)
        raise typer.Exit(code=1)
    settings = Settings()
    ensure_sqlite_parent(settings.database_url)
    engine = build_engine(settings)
    try:
        drop_schema(engine)
        create_schema(engine)
    finally:
        engine.dispose()
    typer.echo(f"schema reset: {safe_database_url(settings.database_url)}")


__all__ = ["app"]
