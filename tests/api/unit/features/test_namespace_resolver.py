from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from publisher_api.core.auth.principal import AuthenticatedPrincipal
from publisher_api.core.rbac.errors import InvalidInput, InvalidRequest
from publisher_api.core.rbac.types import (
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    Outcome,
)
from publisher_api.features.rbac.resolver import NamespaceResolver
from publisher_api.features.rbac.service import RbacAdminService

Mutate = Callable[[Callable[[RbacAdminService], Any]], Any]
PrincipalFor = Callable[[str], AuthenticatedPrincipal]


@pytest.fixture()
def resolver(session_factory: sessionmaker[Session]) -> NamespaceResolver:
    return NamespaceResolver(session_factory)


@pytest.fixture()
def granted(mutate: Mutate) -> None:
    """Reader on ``/studio/*`` and writer on ``/studio/builds/nightly``."""

    def _build(service: RbacAdminService) -> None:
        division = service.create_division("legacy")
        reader = service.create_role(division.id, "reader")
        service.add_permission_to_role(reader.id, "read")
        writer = service.create_role(division.id, "writer")
        service.add_permission_to_role(writer.id, "update")
        user = service.create_user(division.id, "legacy@user")
        service.grant_namespace(user.id, reader.id, "/studio/*")
        service.grant_namespace(user.id, writer.id, "/studio/builds/nightly")
        service.create_user(division.id, "nogrants@user")

    mutate(_build)


def test_read_grant_covers_the_wildcard_subtree(
    resolver: NamespaceResolver,
    granted: None,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("legacy@user")

    assert resolver.can_read(principal, "/studio")
    assert resolver.can_read(principal, "/studio/builds/nightly/42")
    assert not resolver.can_read(principal, "/other/studio")


def test_write_grant_covers_its_path_and_descendants(
    resolver: NamespaceResolver,
    granted: None,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("legacy@user")

    assert resolver.can_write(principal, "/studio/builds/nightly")
    assert resolver.can_write(principal, "/studio/builds/nightly/42")
    assert not resolver.can_write(principal, "/studio/builds")
    assert not resolver.can_write(principal, "/studio/tools")


def test_user_without_grants_is_denied(
    resolver: NamespaceResolver,
    granted: None,
    principal_for: PrincipalFor,
) -> None:
    result = resolver.namespace_permission(
        principal_for("nogrants@user"), NamespaceAction.READ, "/studio"
    )

    assert result.outcome is Outcome.DENIED


def test_relative_paths_are_invalid_input(
    resolver: NamespaceResolver,
    granted: None,
    principal_for: PrincipalFor,
) -> None:
    principal = principal_for("legacy@user")

    with pytest.raises(InvalidInput):
        resolver.can_read(principal, "studio")

    result = resolver.check(principal, NamespaceAccess(action=NamespaceAction.WRITE, resource_path=""))
    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, InvalidInput)


def test_namespace_resolver_rejects_graph_requests(
    resolver: NamespaceResolver,
    principal_for: PrincipalFor,
) -> None:
    result = resolver.check(
        principal_for("legacy@user"),
        DivisionAccess(permission="rbac-admin", division_id=1),
    )

    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, InvalidRequest)


def test_grants_are_listed_and_revoked(mutate: Mutate) -> None:
    def _build(service: RbacAdminService) -> tuple[int, int]:
        division = service.create_division("revocable")
        role = service.create_role(division.id, "reader")
        user = service.create_user(division.id, "revocable@user")
        service.grant_namespace(user.id, role.id, "/b")
        service.grant_namespace(user.id, role.id, "/a/*")
        return user.id, role.id

    user_id, role_id = mutate(_build)

    assert mutate(lambda service: service.list_namespaces(user_id, role_id)) == ["/a/*", "/b"]

    mutate(lambda service: service.revoke_namespace(user_id, role_id, "/b"))

    assert mutate(lambda service: service.list_namespaces(user_id, role_id)) == ["/a/*"]
