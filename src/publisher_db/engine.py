"""Engine construction and session scopes for SQLite and Postgres."""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import DatabaseSettings

SNAPSHOT_ISOLATION_LEVEL = "REPEATABLE READ"

_TIMEOUT_OPTION = re.compile(r"-c\s+statement_timeout=\S+")


def _postgres_url(url: URL, settings: DatabaseSettings) -> URL:
    if url.drivername in ("postgresql", "postgres"):
        url = url.set(drivername="postgresql+psycopg")
    elif not url.drivername.startswith("postgresql+psycopg"):
        raise ValueError("For Postgres, use postgresql+psycopg://... (psycopg is required).")

    query = dict(url.query)
    if settings.database_connect_timeout_seconds is not None:
        query["connect_timeout"] = str(settings.database_connect_timeout_seconds)
    if settings.database_statement_timeout_ms is not None:
        # Replace any statement_timeout already present in libpq options.
        others = _TIMEOUT_OPTION.sub("", str(query.get("options", ""))).split()
        others.append(f"-c statement_timeout={settings.database_statement_timeout_ms}")
        query["options"] = " ".join(others)
    return url.set(query=query)


def _postgres_kwargs(settings: DatabaseSettings) -> dict[str, Any]:
    return {
        "pool_pre_ping": True,
        "pool_use_lifo": True,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_recycle": settings.database_pool_recycle,
    }


def _sqlite_kwargs(url: URL, settings: DatabaseSettings) -> dict[str, Any]:
    connect_args: dict[str, Any] = {"check_same_thread": False}
    if settings.database_connect_timeout_seconds is not None:
        connect_args["timeout"] = settings.database_connect_timeout_seconds
    in_memory = (url.database or ":memory:") == ":memory:" or "mode=memory" in str(url)
    if in_memory:
        # One shared connection, otherwise each checkout sees an empty database.
        return {"connect_args": connect_args, "poolclass": StaticPool}
    return {"connect_args": connect_args, "pool_pre_ping": True}


def _sqlite_connect(dbapi_connection: Any, _record: Any) -> None:  # pragma: no cover
    # SQLAlchemy emits BEGIN itself, see _sqlite_begin.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _sqlite_begin(connection: Connection) -> None:
    # pysqlite only opens a transaction before DML; reads must share one too.
    connection.exec_driver_sql("BEGIN")


def build_engine(settings: DatabaseSettings) -> Engine:
    """Create an engine for ``settings.database_url``.

    Bare ``postgresql://`` URLs are switched to the psycopg driver and get the
    configured connect and statement timeouts. SQLite connections run with
    foreign key enforcement and open a real transaction on every begin, so
    reads inside one session share a snapshot.
    """

    if not settings.database_url:
        raise ValueError("Settings.database_url is required.")
    url = make_url(settings.database_url)
    backend = url.get_backend_name()

    if backend == "postgresql":
        return create_engine(
            _postgres_url(url, settings), echo=settings.database_echo, **_postgres_kwargs(settings)
        )
    if backend == "sqlite":
        engine = create_engine(url, echo=settings.database_echo, **_sqlite_kwargs(url, settings))
        event.listen(engine, "connect", _sqlite_connect)
        event.listen(engine, "begin", _sqlite_begin)
        return engine
    raise ValueError("Unsupported database backend. Use sqlite:// or postgresql+psycopg://.")


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Commit on success, roll back on error."""

    with session_factory() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        session.commit()


@contextmanager
def snapshot_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Yield a session whose reads all come from one snapshot; never commits.

    Postgres is pinned to REPEATABLE READ for the transaction. On SQLite the
    explicit BEGIN from :func:`build_engine` keeps every read in one
    transaction, and SQLite transactions are serializable.
    """

    with session_factory() as session:
        try:
            if session.get_bind().dialect.name == "postgresql":
                session.connection(
                    execution_options={"isolation_level": SNAPSHOT_ISOLATION_LEVEL}
                )
            yield session
        finally:
            session.rollback()


def assert_tables_exist(
    engine: Engine,
    required_tables: list[str],
    *,
    schema: str | None = None,
) -> None:
    inspector = inspect(engine)
    missing = [name for name in required_tables if not inspector.has_table(name, schema=schema)]
    if missing:
        raise RuntimeError(
            f"Database is missing tables ({', '.join(missing)}); "
            "run `publisher db init` first."
        )


__all__ = [
    "SNAPSHOT_ISOLATION_LEVEL",
    "assert_tables_exist",
    "build_engine",
    "session_scope",
    "snapshot_session",
]
