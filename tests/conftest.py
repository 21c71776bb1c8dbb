"""Shared pytest fixtures: file-backed SQLite graphs and principals."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from publisher_api.core.auth.principal import AuthenticatedPrincipal, AuthVia
from publisher_api.features.rbac.seed import SampleGraph, seed_sample_graph
from publisher_api.features.rbac.service import RbacAdminService
from publisher_api.settings import Settings
from publisher_db.engine import build_engine, session_scope
from publisher_db.schema import create_schema


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'publisher.sqlite'}"


@pytest.fixture()
def settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        database_url=database_url,
        database_auto_create=True,
        environment="test",
        authz_mode="graph",
    )


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    engine = build_engine(settings)
    create_schema(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    with session_scope(factory) as session:
        RbacAdminService(session=session).sync_permission_registry()
    return factory


@pytest.fixture()
def sample_graph(session_factory: sessionmaker[Session]) -> SampleGraph:
    """Seed and commit the sample graph so resolver sessions can read it."""

    with session_scope(session_factory) as session:
        return seed_sample_graph(session)


@pytest.fixture()
def mutate(
    session_factory: sessionmaker[Session],
) -> Callable[[Callable[[RbacAdminService], Any]], Any]:
    """Run a callback against the admin service inside one committed transaction."""

    def _run(callback: Callable[[RbacAdminService], Any]) -> Any:
        with session_scope(session_factory) as session:
            return callback(RbacAdminService(session=session))

    return _run


@pytest.fixture()
def principal_for() -> Callable[[str], AuthenticatedPrincipal]:
    def _build(external_id: str) -> AuthenticatedPrincipal:
        return AuthenticatedPrincipal(external_id=external_id, auth_via=AuthVia.HEADER)

    return _build
