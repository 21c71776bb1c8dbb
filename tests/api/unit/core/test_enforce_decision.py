from __future__ import annotations

import logging

import pytest
from starlette.requests import Request

from publisher_api.core.auth.errors import PermissionDeniedError
from publisher_api.core.auth.principal import AuthenticatedPrincipal, AuthVia
from publisher_api.core.http.dependencies import AuthorizationScope, enforce_decision
from publisher_api.core.http.errors import authorization_error_status
from publisher_api.core.rbac.errors import (
    InvalidRequest,
    PrincipalNotFound,
    StoreUnavailable,
    UnknownPermission,
)
from publisher_api.core.rbac.types import AuthorizationResult, DivisionAccess, ResourceAccess

LOGGER_NAME = "publisher_api.core.http.dependencies"
PRINCIPAL = AuthenticatedPrincipal(external_id="julia@vice.president", auth_via=AuthVia.HEADER)


def _request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": []})


def test_allowed_decision_attaches_scope_to_request() -> None:
    request = _request()
    access = ResourceAccess(game_id=3, permissions=("read", "update"))

    scope = enforce_decision(request, PRINCIPAL, access, AuthorizationResult.allow("ok"))

    assert isinstance(scope, AuthorizationScope)
    assert request.state.authorization_scope is scope
    assert scope.scope_type == "game"
    assert scope.scope_id == 3
    assert scope.permissions == ("read", "update")


def test_denied_decision_raises_permission_denied_and_logs_info(
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    access = DivisionAccess(permission="rbac-admin", division_id=9)

    with pytest.raises(PermissionDeniedError) as exc_info:
        enforce_decision(_request(), PRINCIPAL, access, AuthorizationResult.deny("no grant"))

    assert exc_info.value.scope_type == "division"
    assert exc_info.value.scope_id == 9
    records = [r for r in caplog.records if r.name == LOGGER_NAME]
    assert [r.getMessage() for r in records] == ["authz.decision.denied"]
    assert records[0].levelno == logging.INFO


@pytest.mark.parametrize(
    ("error", "level"),
    [
        (StoreUnavailable("down"), logging.ERROR),
        (UnknownPermission("fly"), logging.ERROR),
        (InvalidRequest("empty"), logging.WARNING),
        (PrincipalNotFound("ghost"), logging.WARNING),
    ],
)
def test_failed_decision_reraises_error_and_logs_kind(
    caplog: pytest.LogCaptureFixture,
    error: Exception,
    level: int,
) -> None:
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    access = ResourceAccess(game_id=1, permissions=("read",))

    with pytest.raises(type(error)) as exc_info:
        enforce_decision(_request(), PRINCIPAL, access, AuthorizationResult.failed(error))

    assert exc_info.value is error
    records = [r for r in caplog.records if r.getMessage() == "authz.decision.error"]
    assert len(records) == 1
    assert records[0].levelno == level
    assert records[0].error_kind == error.kind


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (PrincipalNotFound("ghost"), ("not_found", 404)),
        (InvalidRequest("bad"), ("bad_request", 400)),
        (UnknownPermission("fly"), ("internal_error", 500)),
        (StoreUnavailable("down"), ("service_unavailable", 503)),
    ],
)
def test_authorization_errors_map_to_http_status(
    error: Exception,
    expected: tuple[str, int],
) -> None:
    assert authorization_error_status(error) == expected
