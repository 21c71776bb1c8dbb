"""Development resolvers selected at startup instead of the graph resolver."""

from __future__ import annotations

from ..auth.principal import AuthenticatedPrincipal
from .errors import InvalidInput, InvalidRequest
from .namespace import SEPARATOR
from .registry import collect_permission_keys, normalize_permission_key, require_scope
from .service_interface import Resolver
from .types import (
    AccessRequest,
    AuthorizationResult,
    DivisionAccess,
    NamespaceAccess,
    ResourceAccess,
    ScopeType,
)


def validate_access_request(request: AccessRequest) -> None:
    """Reject malformed requests the same way the real resolvers do."""

    if isinstance(request, DivisionAccess):
        require_scope(normalize_permission_key(request.permission), ScopeType.DIVISION)
    elif isinstance(request, ResourceAccess):
        if not request.permissions:
            raise InvalidRequest("At least one permission is required")
        for key in collect_permission_keys(request.permissions):
            require_scope(key, ScopeType.RESOURCE)
    elif isinstance(request, NamespaceAccess):
        if not request.resource_path.startswith(SEPARATOR):
            raise InvalidInput("Resource path must start with '/'")
    else:
        raise InvalidRequest(f"Unsupported access request: {type(request).__name__}")


class AllowAllResolver(Resolver):
    """Allows every well-formed request."""

    name = "allow_all"

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        validate_access_request(request)
        return AuthorizationResult.allow("authorization bypassed")


class FixedPrincipalResolver(Resolver):
    """Evaluates every request as one configured principal."""

    name = "fixed_principal"

    def __init__(self, inner: Resolver, principal: AuthenticatedPrincipal) -> None:
        self._inner = inner
        self._principal = principal

    @property
    def principal(self) -> AuthenticatedPrincipal:
        return self._principal

    def effective_principal(self, principal: AuthenticatedPrincipal) -> AuthenticatedPrincipal:
        return self._principal

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        return self._inner.evaluate(self._principal, request)


__all__ = ["AllowAllResolver", "FixedPrincipalResolver", "validate_access_request"]
