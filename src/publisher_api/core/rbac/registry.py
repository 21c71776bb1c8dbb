"""Canonical permission catalog.

The catalog is closed: anything not listed here is rejected with
:class:`UnknownPermission`. Division-scoped and resource-scoped identifiers
never overlap.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from publisher_api.core.rbac.errors import InvalidRequest, UnknownPermission
from publisher_api.core.rbac.types import PermissionDef, ScopeType

CATALOG_VERSION = 1

CHANGE_PRODUCTION = "change-production"


def _permission(
    *,
    key: str,
    scope: ScopeType,
    label: str,
    description: str,
) -> PermissionDef:
    return PermissionDef(key=key, scope_type=scope, label=label, description=description)


PERMISSIONS: tuple[PermissionDef, ...] = (
    # Resource permissions -----------------------------------------------
    _permission(
        key="create",
        scope=ScopeType.RESOURCE,
        label="Create",
        description="Create binaries and metadata for a game.",
    ),
    _permission(
        key="read",
        scope=ScopeType.RESOURCE,
        label="Read",
        description="Read binaries and metadata for a game.",
    ),
    _permission(
        key="update",
        scope=ScopeType.RESOURCE,
        label="Update",
        description="Modify binaries and metadata for a game.",
    ),
    _permission(
        key="delete",
        scope=ScopeType.RESOURCE,
        label="Delete",
        description="Delete binaries and metadata for a game.",
    ),
    _permission(
        key=CHANGE_PRODUCTION,
        scope=ScopeType.RESOURCE,
        label="Change production",
        description="Apply create/read/update/delete to live or released data.",
    ),
    # Division permissions -----------------------------------------------
    _permission(
        key="rbac-admin",
        scope=ScopeType.DIVISION,
        label="Administer RBAC",
        description="Modify groups, roles, and user assignments in the division.",
    ),
    _permission(
        key="create-account",
        scope=ScopeType.DIVISION,
        label="Create accounts",
        description="Create user accounts within the division.",
    ),
    _permission(
        key="remove-account",
        scope=ScopeType.DIVISION,
        label="Remove accounts",
        description="Remove user accounts from the division.",
    ),
    _permission(
        key="all-games-access",
        scope=ScopeType.DIVISION,
        label="All games access",
        description="Marks roles that should be granted every current and new game.",
    ),
    _permission(
        key="t2-admin",
        scope=ScopeType.DIVISION,
        label="Publisher administrator",
        description="Publisher-wide administrative capability.",
    ),
)

PERMISSION_REGISTRY: dict[str, PermissionDef] = {
    definition.key: definition for definition in PERMISSIONS
}

DIVISION_PERMISSIONS: frozenset[str] = frozenset(
    definition.key for definition in PERMISSIONS if definition.scope_type == ScopeType.DIVISION
)
RESOURCE_PERMISSIONS: frozenset[str] = frozenset(
    definition.key for definition in PERMISSIONS if definition.scope_type == ScopeType.RESOURCE
)


def normalize_permission_key(key: str | Any) -> str:
    normalized = str(key).strip()
    if not normalized:
        raise InvalidRequest("Permission key cannot be blank")
    if normalized not in PERMISSION_REGISTRY:
        raise UnknownPermission(normalized)
    return normalized


def collect_permission_keys(keys: Iterable[str]) -> tuple[str, ...]:
    """Return normalized permission keys enforcing catalog membership."""

    normalized = tuple(normalize_permission_key(key) for key in keys)
    # Deduplicate while preserving order
    return tuple(dict.fromkeys(normalized))


def require_scope(key: str, scope: ScopeType) -> PermissionDef:
    """Return the definition for ``key`` if it belongs to ``scope``."""

    definition = PERMISSION_REGISTRY.get(key)
    if definition is None:
        raise UnknownPermission(key)
    if definition.scope_type != scope:
        raise InvalidRequest(
            f"Permission '{key}' is {definition.scope_type.value}-scoped, "
            f"not {scope.value}-scoped"
        )
    return definition


__all__ = [
    "CATALOG_VERSION",
    "CHANGE_PRODUCTION",
    "DIVISION_PERMISSIONS",
    "PERMISSIONS",
    "PERMISSION_REGISTRY",
    "RESOURCE_PERMISSIONS",
    "collect_permission_keys",
    "normalize_permission_key",
    "require_scope",
]
