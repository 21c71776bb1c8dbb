"""Engine ownership and per-request sessions for the publisher API."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import HTTPConnection

from publisher_api.common.problem_details import ApiError
from publisher_api.core.auth.errors import AuthenticationError, PermissionDeniedError
from publisher_api.core.rbac.errors import AuthorizationError
from publisher_api.settings import Settings, get_settings
from publisher_db.engine import build_engine

logger = logging.getLogger(__name__)

# Raised on purpose by routes and dependencies; a rollback after these is routine.
_CLIENT_FACING = (
    HTTPException,
    RequestValidationError,
    AuthenticationError,
    PermissionDeniedError,
    AuthorizationError,
)


@dataclass(frozen=True)
class Database:
    engine: Engine
    sessions: sessionmaker[Session]


def _database(app: FastAPI) -> Database:
    database = getattr(app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Call init_db(app, ...) at startup.")
    return database


def init_db(app: FastAPI, settings: Settings | None = None) -> None:
    """Build the engine for ``settings`` and attach it to ``app.state``.

    A previously attached engine is disposed first so re-initialisation in
    tests does not leak pools.
    """

    previous = getattr(app.state, "database", None)
    if previous is not None:
        previous.engine.dispose()
    engine = build_engine(settings or get_settings())
    app.state.database = Database(
        engine=engine, sessions=sessionmaker(bind=engine, expire_on_commit=False)
    )


def shutdown_db(app: FastAPI) -> None:
    database = getattr(app.state, "database", None)
    if database is not None:
        database.engine.dispose()
    app.state.database = None


def get_engine_from_app(app: FastAPI) -> Engine:
    return _database(app).engine


def get_session_factory_from_app(app: FastAPI) -> sessionmaker[Session]:
    return _database(app).sessions


def get_session_factory(conn: HTTPConnection) -> sessionmaker[Session]:
    return get_session_factory_from_app(conn.app)


def _is_routine(exc: BaseException) -> bool:
    if isinstance(exc, _CLIENT_FACING):
        return True
    return isinstance(exc, ApiError) and exc.status_code < 500


def _request_session(request: Request) -> Iterator[Session]:
    """Yield a session that commits only when a write dependency asked for it."""

    session = get_session_factory(request)()
    try:
        yield session
    except BaseException as exc:
        session.rollback()
        if not _is_routine(exc):
            logger.warning(
                "db.session.rollback",
                extra={"path": request.url.path, "method": request.method},
                exc_info=exc,
            )
        raise
    else:
        if getattr(request.state, "db_writes", False):
            session.commit()
        else:
            session.rollback()
    finally:
        session.close()


def get_db_write(
    request: Request,
    session: Annotated[Session, Depends(_request_session)],
) -> Session:
    request.state.db_writes = True
    return session


def get_db_read(session: Annotated[Session, Depends(_request_session)]) -> Session:
    return session


ReadSessionDep = Annotated[Session, Depends(get_db_read)]
WriteSessionDep = Annotated[Session, Depends(get_db_write)]


__all__ = [
    "Database",
    "ReadSessionDep",
    "WriteSessionDep",
    "get_db_read",
    "get_db_write",
    "get_engine_from_app",
    "get_session_factory",
    "get_session_factory_from_app",
    "init_db",
    "shutdown_db",
]
