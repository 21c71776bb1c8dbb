"""Resolver interface consumed by HTTP dependencies and feature modules."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..auth.principal import AuthenticatedPrincipal
from .errors import AuthorizationError
from .types import AccessRequest, AuthorizationResult

logger = logging.getLogger(__name__)


class Resolver:
    """Decides whether a principal may perform an access request.

    Implementations live in ``features/rbac/resolver.py`` (relational graph and
    legacy namespace strategies) and ``core/rbac/dev.py`` (development
    variants). Subclasses implement :meth:`evaluate`, which returns an allow or
    deny result and raises :class:`AuthorizationError` subclasses when the
    decision cannot be made.
    """

    name = "resolver"

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:  # pragma: no cover - interface only
        raise NotImplementedError

    def effective_principal(self, principal: AuthenticatedPrincipal) -> AuthenticatedPrincipal:
        """Principal whose grants :meth:`evaluate` consults for ``principal``."""

        return principal

    def check(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        """Evaluate ``request`` and fold taxonomy errors into an error result."""

        try:
            result = self.evaluate(principal, request)
        except AuthorizationError as exc:
            logger.debug(
                "authz.check.error",
                extra={
                    "resolver": self.name,
                    "principal": principal.external_id,
                    "error_kind": exc.kind,
                },
            )
            return AuthorizationResult.failed(exc)
        logger.debug(
            "authz.check.complete",
            extra={
                "resolver": self.name,
                "principal": principal.external_id,
                "outcome": result.outcome.value,
            },
        )
        return result


@dataclass(frozen=True)
class ResolverSet:
    """Resolvers selected for the running application."""

    graph: Resolver
    namespace: Resolver
    mode: str


__all__ = ["Resolver", "ResolverSet"]
