"""Fixtures that run the full application against the seeded sample graph."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from publisher_api.features.rbac.seed import SampleGraph
from publisher_api.main import create_app
from publisher_api.settings import Settings

PRINCIPAL_HEADER = "X-Authenticated-User"


@pytest.fixture()
def client(settings: Settings, sample_graph: SampleGraph) -> Iterator[TestClient]:
    """Started application; the sample graph is committed before startup."""

    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def as_user() -> Callable[[str], dict[str, str]]:
    def _headers(external_id: str) -> dict[str, str]:
        return {PRINCIPAL_HEADER: external_id}

    return _headers
