from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from publisher_api.features.rbac.seed import SampleGraph
from publisher_api.features.rbac.service import RbacAdminService
from publisher_api.main import create_app
from publisher_api.settings import Settings

pytestmark = pytest.mark.integration

AsUser = Callable[[str], dict[str, str]]
Mutate = Callable[[Callable[[RbacAdminService], Any]], Any]

ADMIN = "debug@admin"
JULIA = "julia@vice.president"


def test_requests_without_identity_are_unauthorized(client: TestClient) -> None:
    response = client.get("/api/rbac/permissions")

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["status"] == 401
    assert body["instance"] == "/api/rbac/permissions"
    assert body["requestId"] == response.headers["X-Request-ID"]


def test_permission_catalog_is_listed(client: TestClient, as_user: AsUser) -> None:
    response = client.get("/api/rbac/permissions", headers=as_user("test@user"))

    assert response.status_code == 200
    scopes = {item["id"]: item["scope"] for item in response.json()}
    assert scopes["rbac-admin"] == "division"
    assert scopes["change-production"] == "resource"


def test_about_describes_the_caller(client: TestClient, as_user: AsUser) -> None:
    response = client.get("/api/rbac/about", headers=as_user(JULIA))

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == JULIA
    assert body["division"] == "t2"
    [group] = body["groups"]
    assert group["name"] == "civ devs"
    roles = {role["name"]: role for role in group["roles"]}
    assert sorted(roles) == ["civ editor", "viewer-all"]
    assert [game["name"] for game in roles["civ editor"]["games"]] == ["Civilization VI"]


def test_about_other_user_requires_division_admin(client: TestClient, as_user: AsUser) -> None:
    denied = client.get("/api/rbac/about", params={"userName": "test@user"}, headers=as_user(JULIA))
    allowed = client.get("/api/rbac/about", params={"userName": JULIA}, headers=as_user(ADMIN))

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["name"] == JULIA


def test_unknown_principal_is_not_found(client: TestClient, as_user: AsUser, sample_graph: SampleGraph) -> None:
    about = client.get("/api/rbac/about", headers=as_user("ghost@nowhere"))
    guarded = client.post(
        f"/api/rbac/divisions/{sample_graph.division_id}/groups",
        params={"groupName": "ghosts"},
        headers=as_user("ghost@nowhere"),
    )

    assert about.status_code == 404
    assert guarded.status_code == 404


def test_group_creation_requires_rbac_admin(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    url = f"/api/rbac/divisions/{sample_graph.division_id}/groups"

    denied = client.post(url, params={"groupName": "new group"}, headers=as_user("test@user"))
    created = client.post(url, params={"groupName": "new group"}, headers=as_user(ADMIN))
    duplicate = client.post(url, params={"groupName": "new group"}, headers=as_user(ADMIN))

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["name"] == "new group"
    assert created.json()["ownerId"] == sample_graph.division_id
    assert duplicate.status_code == 409

    listed = client.get(url, headers=as_user(ADMIN))
    assert "new group" in [group["name"] for group in listed.json()]


def test_admin_rights_do_not_cross_divisions(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    response = client.post(
        f"/api/rbac/divisions/{sample_graph.empty_division_id}/groups",
        params={"groupName": "intruders"},
        headers=as_user(ADMIN),
    )

    assert response.status_code == 403


def test_missing_division_is_not_found(client: TestClient, as_user: AsUser) -> None:
    response = client.get("/api/rbac/divisions/999999/groups", headers=as_user(ADMIN))

    assert response.status_code == 404


def test_group_membership_round_trip(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    group_id = sample_graph.groups["viewers"]
    guest_id = sample_graph.users["guest@user"]
    headers = as_user(ADMIN)

    added = client.post(f"/api/rbac/groups/{group_id}/users/{guest_id}", headers=headers)
    again = client.post(f"/api/rbac/groups/{group_id}/users/{guest_id}", headers=headers)
    members = client.get(f"/api/rbac/groups/{group_id}/users", headers=headers)
    removed = client.delete(f"/api/rbac/groups/{group_id}/users/{guest_id}", headers=headers)
    missing = client.delete(f"/api/rbac/groups/{group_id}/users/{guest_id}", headers=headers)

    assert added.status_code == 204
    assert again.status_code == 409
    assert "guest@user" in [user["name"] for user in members.json()]
    assert removed.status_code == 204
    assert missing.status_code == 404


def test_cross_division_membership_is_a_bad_request(
    client: TestClient,
    as_user: AsUser,
    mutate: Mutate,
    sample_graph: SampleGraph,
) -> None:
    loner_id = mutate(
        lambda service: service.create_user(sample_graph.empty_division_id, "loner@empty").id
    )

    response = client.post(
        f"/api/rbac/groups/{sample_graph.groups['admins']}/users/{loner_id}",
        headers=as_user(ADMIN),
    )

    assert response.status_code == 400


def test_role_permissions_and_games(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    headers = as_user(ADMIN)
    created = client.post(
        f"/api/rbac/divisions/{sample_graph.division_id}/roles",
        params={"roleName": "xcom tester"},
        headers=headers,
    )
    role_id = created.json()["id"]
    xcom = sample_graph.games["XCOM 2"]

    assert created.status_code == 201
    assert client.post(f"/api/rbac/roles/{role_id}/permissions/read", headers=headers).status_code == 204
    assert client.post(f"/api/rbac/roles/{role_id}/permissions/warp", headers=headers).status_code == 400
    assert client.post(f"/api/rbac/roles/{role_id}/games/{xcom}", headers=headers).status_code == 204

    permissions = client.get(f"/api/rbac/roles/{role_id}/permissions", headers=headers).json()
    games = client.get(f"/api/rbac/roles/{role_id}/games", headers=headers).json()
    assert [item["id"] for item in permissions] == ["read"]
    assert [item["name"] for item in games] == ["XCOM 2"]

    assert client.delete(f"/api/rbac/roles/{role_id}", headers=headers).status_code == 204
    assert client.get(f"/api/rbac/roles/{role_id}/games", headers=headers).status_code == 404


def test_user_accounts(client: TestClient, as_user: AsUser, sample_graph: SampleGraph) -> None:
    url = f"/api/rbac/divisions/{sample_graph.division_id}/users"

    denied = client.post(url, json={"name": "new@hire"}, headers=as_user(JULIA))
    created = client.post(
        url,
        json={"name": "new@hire", "accountType": "sso"},
        headers=as_user(ADMIN),
    )

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["accountType"] == "sso"

    user_id = created.json()["id"]
    assert client.get(f"/api/rbac/users/{user_id}", headers=as_user(ADMIN)).status_code == 200
    assert client.delete(f"/api/rbac/users/{user_id}", headers=as_user(ADMIN)).status_code == 204
    assert client.get(f"/api/rbac/users/{user_id}", headers=as_user(ADMIN)).status_code == 404


def test_users_cannot_remove_themselves(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    response = client.delete(
        f"/api/rbac/users/{sample_graph.users[ADMIN]}",
        headers=as_user(ADMIN),
    )

    assert response.status_code == 400


@pytest.fixture()
def fixed_client(settings: Settings, sample_graph: SampleGraph) -> Iterator[TestClient]:
    """Every decision is made as the configured development principal (``debug@admin``)."""

    app = create_app(settings.model_copy(update={"authz_mode": "fixed_principal"}))
    with TestClient(app) as test_client:
        yield test_client


def test_self_removal_uses_the_evaluated_principal(
    fixed_client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    own = fixed_client.delete(
        f"/api/rbac/users/{sample_graph.users[ADMIN]}",
        headers=as_user(JULIA),
    )
    other = fixed_client.delete(
        f"/api/rbac/users/{sample_graph.users['guest@user']}",
        headers=as_user(JULIA),
    )

    assert own.status_code == 400
    assert other.status_code == 204


def test_caller_division_users(client: TestClient, as_user: AsUser) -> None:
    response = client.get("/api/rbac/users", headers=as_user("test@user"))

    assert response.status_code == 200
    assert "julia@vice.president" in [user["name"] for user in response.json()]


def test_namespace_grant_routes(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    url = (
        f"/api/rbac/users/{sample_graph.users[JULIA]}"
        f"/roles/{sample_graph.roles['civ editor']}/namespaces"
    )
    headers = as_user(ADMIN)

    created = client.post(url, json={"namespace": "/t2/*"}, headers=headers)
    invalid = client.post(url, json={"namespace": "t2"}, headers=headers)
    listed = client.get(url, headers=headers)
    revoked = client.delete(url, params={"namespace": "/t2/*"}, headers=headers)

    assert created.status_code == 201
    assert created.json()["namespace"] == "/t2/*"
    assert invalid.status_code == 400
    assert listed.json()["namespaces"] == ["/t2/*"]
    assert revoked.status_code == 204


def test_user_roles_explain_resource_access(
    client: TestClient,
    as_user: AsUser,
    sample_graph: SampleGraph,
) -> None:
    url = f"/api/rbac/users/{sample_graph.users['teddanson@thegood.place']}/roles"

    listed = client.get(url, headers=as_user(ADMIN))
    denied = client.get(url, headers=as_user(JULIA))

    assert listed.status_code == 200
    roles = {role["name"]: role for role in listed.json()}
    assert sorted(roles) == ["civ admin", "content admin"]
    assert "change-production" in roles["civ admin"]["permissions"]
    assert [game["name"] for game in roles["civ admin"]["games"]] == ["Civilization VI"]
    assert denied.status_code == 403
