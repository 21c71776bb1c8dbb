"""FastAPI dependencies that bridge HTTP requests to the auth/RBAC foundation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from publisher_api.common.logging import log_context
from publisher_api.common.problem_details import ApiError
from publisher_api.db import ReadSessionDep
from publisher_api.settings import Settings, get_settings

from ..auth import (
    AuthenticatedPrincipal,
    PermissionDeniedError,
    authenticate_request,
)
from ..rbac.errors import AuthorizationError, StoreUnavailable, UnknownPermission
from ..rbac.service_interface import Resolver, ResolverSet
from ..rbac.types import (
    AccessRequest,
    AuthorizationResult,
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    Outcome,
    ResourceAccess,
    ResourceKind,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationScope:
    """Scope attached to ``request.state.authorization_scope`` once allowed."""

    principal: AuthenticatedPrincipal
    scope_type: str
    scope_id: int | str
    permissions: tuple[str, ...]


ScopeDependency = Callable[..., AuthorizationScope]


def get_app_settings(conn: HTTPConnection) -> Settings:
    settings = getattr(conn.app.state, "settings", None)
    return settings or get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_resolvers(conn: HTTPConnection) -> ResolverSet:
    resolvers = getattr(conn.app.state, "resolvers", None)
    if resolvers is None:
        raise RuntimeError("Resolvers not initialized. Start the application lifespan first.")
    return resolvers


ResolversDep = Annotated[ResolverSet, Depends(get_resolvers)]


def get_current_principal(request: Request, settings: SettingsDep) -> AuthenticatedPrincipal:
    """Authenticate the incoming request and return the current principal."""

    principal = authenticate_request(request, settings)
    request.state.principal = principal
    return principal


PrincipalDep = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]


def _describe(access: AccessRequest) -> tuple[str, int | str, tuple[str, ...]]:
    if isinstance(access, DivisionAccess):
        return "division", access.division_id, (access.permission,)
    if isinstance(access, ResourceAccess):
        return "game", access.game_id, tuple(access.permissions)
    return "namespace", access.resource_path, (access.action.value,)


def enforce_decision(
    request: Request,
    principal: AuthenticatedPrincipal,
    access: AccessRequest,
    result: AuthorizationResult,
) -> AuthorizationScope:
    """Continue on allow, otherwise raise the error matching the outcome.

    Denials and evaluation failures are logged under different event names.
    """

    scope_type, scope_id, permissions = _describe(access)
    if result.outcome is Outcome.ALLOWED:
        scope = AuthorizationScope(
            principal=principal,
            scope_type=scope_type,
            scope_id=scope_id,
            permissions=permissions,
        )
        request.state.authorization_scope = scope
        return scope

    context = log_context(
        principal=principal.external_id,
        scope_type=scope_type,
        scope_id=scope_id,
        permissions=",".join(permissions),
        reason=result.reason,
    )
    if result.outcome is Outcome.DENIED:
        logger.info("authz.decision.denied", extra=context)
        raise PermissionDeniedError(
            permission_key=",".join(permissions),
            scope_type=scope_type,
            scope_id=scope_id,
        )

    error = result.error
    if not isinstance(error, AuthorizationError):
        error = StoreUnavailable(result.reason or "Authorization could not be evaluated")
    level = logging.WARNING
    if isinstance(error, (StoreUnavailable, UnknownPermission)):
        level = logging.ERROR
    logger.log(level, "authz.decision.error", extra={**context, "error_kind": error.kind})
    raise error


def authorize(
    request: Request,
    resolver: Resolver,
    principal: AuthenticatedPrincipal,
    access: AccessRequest,
) -> AuthorizationScope:
    """Evaluate ``access`` and record the principal the resolver decided for."""

    result = resolver.check(principal, access)
    return enforce_decision(request, resolver.effective_principal(principal), access, result)


@contextmanager
def store_guard(principal: AuthenticatedPrincipal, **context: object) -> Iterator[None]:
    """Turn store failures during pre-decision lookups into ``StoreUnavailable``."""

    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "authz.decision.error",
            extra=log_context(
                principal=principal.external_id,
                error_kind=StoreUnavailable.kind,
                error_class=type(exc).__name__,
                **context,
            ),
            exc_info=True,
        )
        raise StoreUnavailable("Authorization store query failed") from exc


def _path_int(request: Request, param: str) -> int:
    raw = request.path_params.get(param)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ApiError(
            error_type="bad_request",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Path parameter '{param}' must be an integer",
        ) from exc


def _not_found(kind: ResourceKind, resource_id: int) -> ApiError:
    return ApiError(
        error_type="not_found",
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind.value.capitalize()} '{resource_id}' not found",
    )


def resolve_owner_division(
    session: Session,
    kind: ResourceKind,
    resource_id: int,
    principal: AuthenticatedPrincipal,
) -> int:
    """Return the division owning the resource or raise a 404 Problem Details error."""

    from publisher_api.features.rbac.repository import AuthorizationGraphStore

    with store_guard(principal, scope_type=kind.value, scope_id=resource_id):
        owner_id = AuthorizationGraphStore(session).resource_owner_id(kind, resource_id)
    if owner_id is None:
        raise _not_found(kind, resource_id)
    return owner_id


def require_division_permission(
    permission: str,
    *,
    resource: ResourceKind = ResourceKind.DIVISION,
    param: str = "divisionId",
) -> ScopeDependency:
    """Return a dependency enforcing a division permission.

    ``resource`` names the entity addressed by ``param``; its owning division
    is the scope of the check.
    """

    def dependency(
        request: Request,
        principal: PrincipalDep,
        resolvers: ResolversDep,
        session: ReadSessionDep,
    ) -> AuthorizationScope:
        resource_id = _path_int(request, param)
        division_id = resolve_owner_division(session, resource, resource_id, principal)
        access = DivisionAccess(permission=permission, division_id=division_id)
        return authorize(request, resolvers.graph, principal, access)

    return dependency


def require_resource_permission(
    *permissions: str,
    param: str = "gameId",
    production_aware: bool = True,
) -> ScopeDependency:
    """Return a dependency enforcing resource permissions on the addressed game.

    Released games additionally require ``change-production`` when
    ``production_aware`` is set.
    """

    def dependency(
        request: Request,
        principal: PrincipalDep,
        resolvers: ResolversDep,
        session: ReadSessionDep,
    ) -> AuthorizationScope:
        game_id = _path_int(request, param)
        return authorize_game(
            request,
            resolvers.graph,
            principal,
            session,
            game_id,
            permissions,
            production_aware=production_aware,
        )

    return dependency


def authorize_game(
    request: Request,
    resolver: Resolver,
    principal: AuthenticatedPrincipal,
    session: Session,
    game_id: int,
    permissions: Iterable[str],
    *,
    production_aware: bool = True,
) -> AuthorizationScope:
    """404 for unknown games, then one resolver decision on ``permissions``.

    The release state is not read here: the resolver applies the production
    rule inside its own snapshot.
    """

    from publisher_api.features.rbac.repository import AuthorizationGraphStore

    with store_guard(principal, scope_type=ResourceKind.GAME.value, scope_id=game_id):
        exists = AuthorizationGraphStore(session).get_game(game_id) is not None
    if not exists:
        raise _not_found(ResourceKind.GAME, game_id)
    access = ResourceAccess(
        game_id=game_id,
        permissions=tuple(dict.fromkeys(permissions)),
        production_aware=production_aware,
    )
    return authorize(request, resolver, principal, access)


def require_namespace_permission(
    action: NamespaceAction,
    *,
    param: str = "path",
) -> ScopeDependency:
    """Return a dependency enforcing a legacy namespace grant on ``/{param}``."""

    def dependency(
        request: Request,
        principal: PrincipalDep,
        resolvers: ResolversDep,
    ) -> AuthorizationScope:
        raw = str(request.path_params.get(param) or "")
        resource_path = raw if raw.startswith("/") else f"/{raw}"
        access = NamespaceAccess(action=action, resource_path=resource_path)
        return authorize(request, resolvers.namespace, principal, access)

    return dependency


__all__ = [
    "AuthorizationScope",
    "PrincipalDep",
    "ResolversDep",
    "SettingsDep",
    "authorize",
    "authorize_game",
    "enforce_decision",
    "get_app_settings",
    "get_current_principal",
    "get_resolvers",
    "require_division_permission",
    "require_namespace_permission",
    "require_resource_permission",
    "resolve_owner_division",
    "store_guard",
]
