"""Resolver strategies backed by the authorization graph store."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from publisher_api.common.logging import log_context
from publisher_api.core.auth.pipeline import dev_principal
from publisher_api.core.auth.principal import AuthenticatedPrincipal
from publisher_api.core.rbac.dev import AllowAllResolver, FixedPrincipalResolver
from publisher_api.core.rbac.errors import (
    InvalidInput,
    InvalidRequest,
    PrincipalNotFound,
    StoreUnavailable,
)
from publisher_api.core.rbac.namespace import SEPARATOR, is_contained
from publisher_api.core.rbac.policy import NAMESPACE_ACTION_PERMISSIONS, required_permissions
from publisher_api.core.rbac.registry import (
    collect_permission_keys,
    normalize_permission_key,
    require_scope,
)
from publisher_api.core.rbac.service_interface import Resolver, ResolverSet
from publisher_api.core.rbac.types import (
    AccessRequest,
    AuthorizationResult,
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    ResourceAccess,
    ScopeType,
)
from publisher_api.settings import Settings
from publisher_db.engine import snapshot_session
from publisher_db.models import User

from .repository import AuthorizationGraphStore

logger = logging.getLogger(__name__)


class _GraphBackedResolver(Resolver):
    """Opens one snapshot session per decision."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _snapshot(self) -> Iterator[AuthorizationGraphStore]:
        try:
            with snapshot_session(self._session_factory) as session:
                yield AuthorizationGraphStore(session)
        except SQLAlchemyError as exc:
            logger.warning(
                "authz.store.unavailable",
                extra=log_context(resolver=self.name, error_class=type(exc).__name__),
                exc_info=True,
            )
            raise StoreUnavailable("Authorization store query failed") from exc

    @staticmethod
    def _resolve_user(
        store: AuthorizationGraphStore,
        principal: AuthenticatedPrincipal,
    ) -> User:
        user = store.get_user_by_external_id(principal.external_id)
        if user is None:
            raise PrincipalNotFound(principal.external_id)
        return user


class GraphResolver(_GraphBackedResolver):
    """Relational resolver: Division -> Group -> Role -> Permission/Game."""

    name = "graph"

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        if isinstance(request, DivisionAccess):
            return self.division_permission(principal, request.permission, request.division_id)
        if isinstance(request, ResourceAccess):
            return self.resource_permission_all(
                principal,
                request.game_id,
                request.permissions,
                production_aware=request.production_aware,
            )
        raise InvalidRequest("The graph resolver does not evaluate namespace requests")

    def division_permission(
        self,
        principal: AuthenticatedPrincipal,
        permission: str,
        division_id: int,
    ) -> AuthorizationResult:
        """Allow when a group owned by ``division_id`` carries ``permission`` for the user."""

        key = normalize_permission_key(permission)
        require_scope(key, ScopeType.DIVISION)

        with self._snapshot() as store:
            user = self._resolve_user(store, principal)
            granted = store.has_division_permission(user.id, key, division_id)

        if granted:
            return AuthorizationResult.allow(f"'{key}' granted in division {division_id}")
        return AuthorizationResult.deny(f"'{key}' not granted in division {division_id}")

    def resource_permission(
        self,
        principal: AuthenticatedPrincipal,
        game_id: int,
        permission: str,
    ) -> AuthorizationResult:
        return self.resource_permission_all(principal, game_id, (permission,))

    def resource_permission_all(
        self,
        principal: AuthenticatedPrincipal,
        game_id: int,
        permissions: Sequence[str],
        *,
        production_aware: bool = False,
    ) -> AuthorizationResult:
        """Allow only when one single role carries every permission and the game.

        Permissions held through different roles are never combined. With
        ``production_aware`` a released game also requires ``change-production``;
        the release flag is read in the same snapshot as the roles.
        """

        if not permissions:
            raise InvalidRequest("At least one permission is required")
        keys = collect_permission_keys(permissions)
        for key in keys:
            require_scope(key, ScopeType.RESOURCE)

        with self._snapshot() as store:
            user = self._resolve_user(store, principal)
            if production_aware:
                game = store.get_game(game_id)
                if game is None:
                    return AuthorizationResult.deny(f"game {game_id} does not exist")
                keys = required_permissions(keys, game)
            role_id = store.find_role_granting_all(user.id, game_id, keys)

        joined = ", ".join(keys)
        if role_id is not None:
            return AuthorizationResult.allow(f"role {role_id} grants [{joined}] on game {game_id}")
        return AuthorizationResult.deny(f"no single role grants [{joined}] on game {game_id}")


class NamespaceResolver(_GraphBackedResolver):
    """Legacy resolver matching resource paths against granted namespaces."""

    name = "namespace"

    def evaluate(
        self,
        principal: AuthenticatedPrincipal,
        request: AccessRequest,
    ) -> AuthorizationResult:
        if isinstance(request, NamespaceAccess):
            return self.namespace_permission(principal, request.action, request.resource_path)
        raise InvalidRequest("The namespace resolver only evaluates namespace requests")

    def namespace_permission(
        self,
        principal: AuthenticatedPrincipal,
        action: NamespaceAction,
        resource_path: str,
    ) -> AuthorizationResult:
        if not resource_path.startswith(SEPARATOR):
            raise InvalidInput("Resource path must start with '/'")
        permission = NAMESPACE_ACTION_PERMISSIONS[NamespaceAction(action).value]

        with self._snapshot() as store:
            user = self._resolve_user(store, principal)
            namespaces = store.list_namespace_grants(user.id, permission)

        for namespace in namespaces:
            if is_contained(resource_path, namespace):
                return AuthorizationResult.allow(f"'{resource_path}' covered by '{namespace}'")
        return AuthorizationResult.deny(f"no '{permission}' grant covers '{resource_path}'")

    def can_read(self, principal: AuthenticatedPrincipal, resource_path: str) -> bool:
        return self.namespace_permission(principal, NamespaceAction.READ, resource_path).allowed

    def can_write(self, principal: AuthenticatedPrincipal, resource_path: str) -> bool:
        return self.namespace_permission(principal, NamespaceAction.WRITE, resource_path).allowed


def build_resolvers(settings: Settings, session_factory: sessionmaker[Session]) -> ResolverSet:
    """Select resolver implementations for ``settings.authz_mode``."""

    mode = settings.authz_mode
    if mode == "allow_all":
        allow_all = AllowAllResolver()
        return ResolverSet(graph=allow_all, namespace=allow_all, mode=mode)

    graph = GraphResolver(session_factory)
    namespace = NamespaceResolver(session_factory)
    if mode == "fixed_principal":
        principal = dev_principal(settings)
        return ResolverSet(
            graph=FixedPrincipalResolver(graph, principal),
            namespace=FixedPrincipalResolver(namespace, principal),
            mode=mode,
        )
    return ResolverSet(graph=graph, namespace=namespace, mode=mode)


__all__ = [
    "GraphResolver",
    "NamespaceResolver",
    "build_resolvers",
]
