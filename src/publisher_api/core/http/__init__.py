"""HTTP dependency helpers built on the shared auth/RBAC contracts."""

from .dependencies import (
    AuthorizationScope,
    PrincipalDep,
    ResolversDep,
    SettingsDep,
    authorize,
    authorize_game,
    get_current_principal,
    get_resolvers,
    require_division_permission,
    require_namespace_permission,
    require_resource_permission,
    store_guard,
)
from .errors import register_auth_exception_handlers

__all__ = [
    "AuthorizationScope",
    "PrincipalDep",
    "ResolversDep",
    "SettingsDep",
    "authorize",
    "authorize_game",
    "get_current_principal",
    "get_resolvers",
    "require_division_permission",
    "require_namespace_permission",
    "require_resource_permission",
    "register_auth_exception_handlers",
    "store_guard",
]
