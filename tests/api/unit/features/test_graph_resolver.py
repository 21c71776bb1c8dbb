from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from publisher_api.core.auth.principal import AuthenticatedPrincipal
from publisher_api.core.rbac.errors import (
    InvalidRequest,
    PrincipalNotFound,
    StoreUnavailable,
    UnknownPermission,
)
from publisher_api.core.rbac.types import (
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    Outcome,
    ResourceAccess,
)
from publisher_api.features.rbac.resolver import GraphResolver
from publisher_api.features.rbac.seed import SampleGraph
from publisher_api.features.rbac.service import RbacAdminService
from publisher_api.settings import Settings
from publisher_db.engine import build_engine

Mutate = Callable[[Callable[[RbacAdminService], Any]], Any]
PrincipalFor = Callable[[str], AuthenticatedPrincipal]


@pytest.fixture()
def resolver(session_factory: sessionmaker[Session]) -> GraphResolver:
    return GraphResolver(session_factory)


# ---------------------------------------------------------------------------
# Single-role invariant
# ---------------------------------------------------------------------------


@pytest.fixture()
def split_roles(mutate: Mutate) -> dict[str, int]:
    """A user holding read and update on one game through two different roles."""

    def _build(service: RbacAdminService) -> dict[str, int]:
        division = service.create_division("split")
        game = service.create_game(division.id, "Shared Game")
        reader = service.create_role(division.id, "reader")
        service.add_permission_to_role(reader.id, "read")
        service.add_game_to_role(reader.id, game.id)
        updater = service.create_role(division.id, "updater")
        service.add_permission_to_role(updater.id, "update")
        service.add_game_to_role(updater.id, game.id)
        first = service.create_group(division.id, "readers")
        second = service.create_group(division.id, "updaters")
        service.add_role_to_group(first.id, reader.id)
        service.add_role_to_group(second.id, updater.id)
        user = service.create_user(division.id, "split@user")
        service.add_user_to_group(first.id, user.id)
        service.add_user_to_group(second.id, user.id)
        return {"game": game.id, "division": division.id}

    return mutate(_build)


def test_permissions_from_different_roles_are_never_combined(
    resolver: GraphResolver,
    split_roles: dict[str, int],
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("split@user")
    game_id = split_roles["game"]

    combined = resolver.resource_permission_all(principal, game_id, ["read", "update"])

    assert combined.outcome is Outcome.DENIED
    assert resolver.resource_permission_all(principal, game_id, ["read"]).allowed
    assert resolver.resource_permission_all(principal, game_id, ["update"]).allowed
    assert resolver.resource_permission(principal, game_id, "update").allowed


def test_duplicate_permissions_do_not_inflate_the_count(
    resolver: GraphResolver,
    split_roles: dict[str, int],
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("split@user")

    result = resolver.resource_permission_all(
        principal, split_roles["game"], ["read", "read", "read"]
    )

    assert result.allowed


def test_role_shared_by_two_groups_still_needs_every_permission(
    resolver: GraphResolver,
    mutate: Mutate,
    principal_for: PrincipalFor,
) -> None:
    def _build(service: RbacAdminService) -> int:
        division = service.create_division("fanout")
        game = service.create_game(division.id, "Fan Game")
        role = service.create_role(division.id, "reader")
        service.add_permission_to_role(role.id, "read")
        service.add_game_to_role(role.id, game.id)
        user = service.create_user(division.id, "fanout@user")
        for name in ("one", "two", "three"):
            group = service.create_group(division.id, name)
            service.add_role_to_group(group.id, role.id)
            service.add_user_to_group(group.id, user.id)
        return game.id

    game_id = mutate(_build)
    principal = principal_for("fanout@user")

    assert resolver.resource_permission_all(principal, game_id, ["read"]).allowed
    denied = resolver.resource_permission_all(principal, game_id, ["read", "update"])
    assert denied.outcome is Outcome.DENIED


def test_role_without_games_applies_to_no_resource(
    resolver: GraphResolver,
    mutate: Mutate,
    principal_for: PrincipalFor,
) -> None:
    def _build(service: RbacAdminService) -> int:
        division = service.create_division("gameless")
        game = service.create_game(division.id, "Any Game")
        role = service.create_role(division.id, "everything")
        for permission in ("create", "read", "update", "delete", "change-production"):
            service.add_permission_to_role(role.id, permission)
        group = service.create_group(division.id, "crew")
        service.add_role_to_group(group.id, role.id)
        user = service.create_user(division.id, "gameless@user")
        service.add_user_to_group(group.id, user.id)
        return game.id

    game_id = mutate(_build)

    result = resolver.resource_permission_all(principal_for("gameless@user"), game_id, ["read"])

    assert result.outcome is Outcome.DENIED


# ---------------------------------------------------------------------------
# Sample scenario
# ---------------------------------------------------------------------------


def test_civ_editor_scenario(
    resolver: GraphResolver,
    mutate: Mutate,
    principal_for: PrincipalFor,
) -> None:
    def _build(service: RbacAdminService) -> dict[str, int]:
        division = service.create_division("D")
        civ6 = service.create_game(division.id, "Civ6")
        other = service.create_game(division.id, "OtherGame")
        role = service.create_role(division.id, "civ-editor")
        for permission in ("read", "update", "delete"):
            service.add_permission_to_role(role.id, permission)
        service.add_game_to_role(role.id, civ6.id)
        group = service.create_group(division.id, "civ-devs")
        service.add_role_to_group(group.id, role.id)
        user = service.create_user(division.id, "u@d")
        service.add_user_to_group(group.id, user.id)
        return {"civ6": civ6.id, "other": other.id}

    games = mutate(_build)
    principal = principal_for("u@d")

    assert resolver.resource_permission_all(principal, games["civ6"], ["read", "update"]).allowed
    production = resolver.resource_permission_all(
        principal, games["civ6"], ["read", "change-production"]
    )
    assert production.outcome is Outcome.DENIED
    other = resolver.resource_permission_all(principal, games["other"], ["read"])
    assert other.outcome is Outcome.DENIED


def test_sample_graph_resource_decisions(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    civ6 = sample_graph.games["Civilization VI"]
    xcom = sample_graph.games["XCOM 2"]
    julia = principal_for("julia@vice.president")
    ted = principal_for("teddanson@thegood.place")
    guest = principal_for("guest@user")

    assert resolver.resource_permission_all(julia, civ6, ["read", "update"]).allowed
    assert resolver.resource_permission_all(julia, xcom, ["read"]).allowed
    assert not resolver.resource_permission_all(julia, xcom, ["update"]).allowed
    assert not resolver.resource_permission_all(julia, civ6, ["update", "change-production"]).allowed
    assert resolver.resource_permission_all(ted, civ6, ["update", "change-production"]).allowed
    assert resolver.resource_permission_all(ted, xcom, ["create", "change-production"]).allowed
    assert not resolver.resource_permission_all(guest, civ6, ["read"]).allowed


def test_release_state_is_read_with_the_roles(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    mutate: Mutate,
    principal_for: PrincipalFor,
) -> None:
    civ6 = sample_graph.games["Civilization VI"]
    julia = principal_for("julia@vice.president")
    ted = principal_for("teddanson@thegood.place")
    read = ResourceAccess(game_id=civ6, permissions=("read",), production_aware=True)

    assert resolver.check(julia, read).allowed

    mutate(lambda service: service.update_game(civ6, released=True))

    released = resolver.check(julia, read)
    assert released.outcome is Outcome.DENIED
    assert "change-production" in released.reason
    assert resolver.check(ted, read).allowed
    assert resolver.check(julia, ResourceAccess(game_id=civ6, permissions=("read",))).allowed


def test_production_rule_on_a_missing_game_denies(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    result = resolver.resource_permission_all(
        principal_for("debug@admin"), 10_000, ["read"], production_aware=True
    )

    assert result.outcome is Outcome.DENIED


# ---------------------------------------------------------------------------
# Division scoping
# ---------------------------------------------------------------------------


def test_division_permission_is_scoped_to_the_group_owner(
    resolver: GraphResolver,
    mutate: Mutate,
    principal_for: PrincipalFor,
) -> None:
    def _build(service: RbacAdminService) -> dict[str, int]:
        division_a = service.create_division("A")
        division_b = service.create_division("B")
        admin_role = service.create_role(division_a.id, "admin")
        service.add_permission_to_role(admin_role.id, "rbac-admin")
        admins = service.create_group(division_a.id, "admins")
        service.add_role_to_group(admins.id, admin_role.id)
        user = service.create_user(division_a.id, "scoped@user")
        service.add_user_to_group(admins.id, user.id)
        return {"a": division_a.id, "b": division_b.id}

    divisions = mutate(_build)
    principal = principal_for("scoped@user")

    assert resolver.division_permission(principal, "rbac-admin", divisions["a"]).allowed
    other = resolver.division_permission(principal, "rbac-admin", divisions["b"])
    assert other.outcome is Outcome.DENIED


def test_sample_graph_division_decisions(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    admin = principal_for("debug@admin")
    julia = principal_for("julia@vice.president")

    assert resolver.division_permission(admin, "rbac-admin", sample_graph.division_id).allowed
    assert resolver.division_permission(admin, "create-account", sample_graph.division_id).allowed
    assert not resolver.division_permission(
        admin, "rbac-admin", sample_graph.empty_division_id
    ).allowed
    assert not resolver.division_permission(julia, "rbac-admin", sample_graph.division_id).allowed


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_empty_permission_list_is_invalid(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("debug@admin")
    game_id = sample_graph.games["XCOM 2"]

    with pytest.raises(InvalidRequest):
        resolver.resource_permission_all(principal, game_id, [])

    result = resolver.check(principal, ResourceAccess(game_id=game_id, permissions=()))
    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, InvalidRequest)


def test_unknown_permission_is_an_error_not_a_denial(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("debug@admin")

    with pytest.raises(UnknownPermission):
        resolver.resource_permission_all(principal, sample_graph.games["XCOM 2"], ["read", "fly"])
    with pytest.raises(UnknownPermission):
        resolver.division_permission(principal, "own-everything", sample_graph.division_id)


def test_permission_scope_must_match_the_check(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("debug@admin")

    with pytest.raises(InvalidRequest):
        resolver.division_permission(principal, "read", sample_graph.division_id)
    with pytest.raises(InvalidRequest):
        resolver.resource_permission_all(principal, sample_graph.games["XCOM 2"], ["rbac-admin"])


def test_unknown_principal_is_reported(
    resolver: GraphResolver,
    sample_graph: SampleGraph,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("nobody@nowhere")

    with pytest.raises(PrincipalNotFound):
        resolver.division_permission(principal, "rbac-admin", sample_graph.division_id)

    result = resolver.check(
        principal,
        DivisionAccess(permission="rbac-admin", division_id=sample_graph.division_id),
    )
    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, PrincipalNotFound)


def test_graph_resolver_rejects_namespace_requests(
    resolver: GraphResolver,
    principal_for: PrincipalFor,
) -> None:
    result = resolver.check(
        principal_for("debug@admin"),
        NamespaceAccess(action=NamespaceAction.READ, resource_path="/t2"),
    )

    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, InvalidRequest)


def test_store_failures_fail_closed_as_errors(
    settings: Settings,
    tmp_path,
    principal_for: PrincipalFor,
) -> None:
    broken = settings.model_copy(
        update={"database_url": f"sqlite:///{tmp_path / 'missing-tables.sqlite'}"}
    )
    engine = build_engine(broken)
    try:
        resolver = GraphResolver(sessionmaker(bind=engine, expire_on_commit=False))
        principal = principal_for("debug@admin")

        with pytest.raises(StoreUnavailable):
            resolver.resource_permission_all(principal, 1, ["read"])

        result = resolver.check(principal, ResourceAccess(game_id=1, permissions=("read",)))
        assert result.outcome is Outcome.ERROR
        assert isinstance(result.error, StoreUnavailable)
    finally:
        engine.dispose()
