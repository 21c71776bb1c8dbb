from __future__ import annotations

import pytest

from publisher_api.core.auth.principal import AuthenticatedPrincipal, AuthVia
from publisher_api.core.rbac.dev import AllowAllResolver, FixedPrincipalResolver
from publisher_api.core.rbac.errors import (
    InvalidInput,
    InvalidRequest,
    PrincipalNotFound,
    UnknownPermission,
)
from publisher_api.core.rbac.service_interface import Resolver
from publisher_api.core.rbac.types import (
    AccessRequest,
    AuthorizationResult,
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    Outcome,
    ResourceAccess,
)

CALLER = AuthenticatedPrincipal(external_id="caller@example.com", auth_via=AuthVia.HEADER)
DEVELOPER = AuthenticatedPrincipal(external_id="debug@admin", auth_via=AuthVia.DEV)


class _RecordingResolver(Resolver):
    name = "recording"

    def __init__(self, result: AuthorizationResult | Exception) -> None:
        self.result = result
        self.seen: list[AuthenticatedPrincipal] = []

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        self.seen.append(principal)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.mark.parametrize(
    "request_",
    [
        DivisionAccess(permission="rbac-admin", division_id=1),
        ResourceAccess(game_id=7, permissions=("read", "update")),
        NamespaceAccess(action=NamespaceAction.WRITE, resource_path="/t2/games"),
    ],
)
def test_allow_all_allows_well_formed_requests(request_: AccessRequest) -> None:
    result = AllowAllResolver().check(CALLER, request_)

    assert result.outcome is Outcome.ALLOWED


@pytest.mark.parametrize(
    ("request_", "error_type"),
    [
        (ResourceAccess(game_id=7, permissions=()), InvalidRequest),
        (ResourceAccess(game_id=7, permissions=("fly",)), UnknownPermission),
        (DivisionAccess(permission="read", division_id=1), InvalidRequest),
        (NamespaceAccess(action=NamespaceAction.READ, resource_path="t2"), InvalidInput),
    ],
)
def test_allow_all_still_rejects_malformed_requests(
    request_: AccessRequest,
    error_type: type[Exception],
) -> None:
    result = AllowAllResolver().check(CALLER, request_)

    assert result.outcome is Outcome.ERROR
    assert isinstance(result.error, error_type)


def test_fixed_principal_substitutes_the_configured_identity() -> None:
    inner = _RecordingResolver(AuthorizationResult.deny("nope"))
    resolver = FixedPrincipalResolver(inner, DEVELOPER)

    result = resolver.check(CALLER, DivisionAccess(permission="rbac-admin", division_id=1))

    assert result.outcome is Outcome.DENIED
    assert inner.seen == [DEVELOPER]
    assert resolver.principal is DEVELOPER


def test_check_folds_taxonomy_errors_into_error_results() -> None:
    error = PrincipalNotFound("ghost@example.com")
    resolver = _RecordingResolver(error)

    result = resolver.check(CALLER, ResourceAccess(game_id=1, permissions=("read",)))

    assert result.outcome is Outcome.ERROR
    assert result.error is error
    assert not result.allowed
    assert "ghost@example.com" in result.reason


def test_check_propagates_unexpected_exceptions() -> None:
    resolver = _RecordingResolver(RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        resolver.check(CALLER, ResourceAccess(game_id=1, permissions=("read",)))


def test_fixed_principal_reports_the_identity_it_decides_as() -> None:
    inner = _RecordingResolver(AuthorizationResult.allow())
    resolver = FixedPrincipalResolver(inner, DEVELOPER)

    assert resolver.effective_principal(CALLER) is DEVELOPER
    assert inner.effective_principal(CALLER) is CALLER
