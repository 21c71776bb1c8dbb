from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

from publisher_api.features.rbac.seed import SampleGraph
from publisher_api.features.rbac.service import RbacAdminService

pytestmark = pytest.mark.integration

AsUser = Callable[[str], dict[str, str]]
Mutate = Callable[[Callable[[RbacAdminService], Any]], Any]

JULIA = "julia@vice.president"


@pytest.fixture()
def julia_namespace(mutate: Mutate, sample_graph: SampleGraph) -> None:
    mutate(
        lambda service: service.grant_namespace(
            sample_graph.users[JULIA], sample_graph.roles["civ editor"], "/t2/games/*"
        )
    )


def test_namespace_grant_allows_read_and_write(
    client: TestClient,
    as_user: AsUser,
    julia_namespace: None,
) -> None:
    read = client.get("/api/resources/t2/games/civ6/saves", headers=as_user(JULIA))
    write = client.put("/api/resources/t2/games/civ6", headers=as_user(JULIA))

    assert read.status_code == 200
    assert read.json() == {"path": "/t2/games/civ6/saves", "action": "read", "principal": JULIA}
    assert write.status_code == 200
    assert write.json()["action"] == "write"


def test_paths_outside_the_namespace_are_denied(
    client: TestClient,
    as_user: AsUser,
    julia_namespace: None,
) -> None:
    assert client.get("/api/resources/t2/tools", headers=as_user(JULIA)).status_code == 403
    assert client.get("/api/resources/t2/games/civ6", headers=as_user("test@user")).status_code == 403
