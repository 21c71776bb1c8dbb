"""Startup and shutdown for the publisher application."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan
from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from publisher_api.common.logging import log_context
from publisher_api.db import get_engine_from_app, get_session_factory_from_app, init_db, shutdown_db
from publisher_api.features.rbac.resolver import build_resolvers
from publisher_api.features.rbac.service import RbacAdminService
from publisher_api.settings import Settings
from publisher_db.engine import assert_tables_exist
from publisher_db.schema import REQUIRED_TABLES, create_schema

logger = logging.getLogger(__name__)


def _verify_connection(engine: Engine, display_url: str) -> None:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("db.connection.failed", extra={"database_url": display_url}, exc_info=True)
        raise RuntimeError(
            "Database is not reachable. Verify PUBLISHER_DATABASE_URL and credentials."
        ) from exc


def _prepare_schema(engine: Engine, settings: Settings, display_url: str) -> None:
    if settings.database_auto_create:
        create_schema(engine)
        return
    try:
        assert_tables_exist(engine, REQUIRED_TABLES)
    except RuntimeError:
        logger.error("db.schema.missing", extra={"database_url": display_url}, exc_info=True)
        raise


def _sync_catalog(session_factory: sessionmaker[Session]) -> None:
    with session_factory.begin() as session:
        RbacAdminService(session=session).sync_permission_registry()


def _announce(settings: Settings) -> None:
    logger.info(
        "publisher_api.startup",
        extra=log_context(
            logging_level=settings.effective_api_log_level,
            authz_mode=settings.authz_mode,
            environment=settings.environment,
            version=settings.app_version,
        ),
    )
    if settings.auth_bypassed:
        logger.warning(
            "auth.disabled",
            extra=log_context(
                authz_mode=settings.authz_mode,
                principal=settings.auth_disabled_user_external_id,
            ),
        )


def create_application_lifespan(*, settings: Settings) -> Lifespan[FastAPI]:
    """Connect, verify the schema, sync the permission catalog, then build resolvers.

    Blocking database work runs in a worker thread. Any failure aborts startup
    and the engine is disposed on the way out.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        _announce(settings)

        display_url = make_url(settings.database_url).render_as_string(hide_password=True)
        init_db(app, settings)
        logger.info("db.init.complete", extra={"database_url": display_url})
        engine = get_engine_from_app(app)
        session_factory = get_session_factory_from_app(app)

        try:
            await asyncio.to_thread(_verify_connection, engine, display_url)
            await asyncio.to_thread(_prepare_schema, engine, settings, display_url)
            await asyncio.to_thread(_sync_catalog, session_factory)

            app.state.resolvers = build_resolvers(settings, session_factory)
            logger.info(
                "authz.resolvers.ready", extra=log_context(authz_mode=app.state.resolvers.mode)
            )
            yield
        finally:
            app.state.resolvers = None
            shutdown_db(app)
            logger.info("publisher_api.shutdown")

    return lifespan


__all__ = ["create_application_lifespan"]
