"""RBAC contracts and the permission catalog shared across features."""

from .errors import (
    AuthorizationError,
    InvalidInput,
    InvalidRequest,
    PrincipalNotFound,
    StoreUnavailable,
    UnknownPermission,
)
from .namespace import is_contained
from .registry import (
    DIVISION_PERMISSIONS,
    PERMISSION_REGISTRY,
    PERMISSIONS,
    RESOURCE_PERMISSIONS,
)
from .service_interface import Resolver, ResolverSet
from .types import (
    AccessRequest,
    AuthorizationResult,
    DivisionAccess,
    NamespaceAccess,
    NamespaceAction,
    Outcome,
    PermissionDef,
    ResourceAccess,
    ResourceKind,
    ScopeType,
)

__all__ = [
    "AccessRequest",
    "AuthorizationError",
    "AuthorizationResult",
    "DIVISION_PERMISSIONS",
    "DivisionAccess",
    "InvalidInput",
    "InvalidRequest",
    "NamespaceAccess",
    "NamespaceAction",
    "Outcome",
    "PERMISSIONS",
    "PERMISSION_REGISTRY",
    "PermissionDef",
    "PrincipalNotFound",
    "RESOURCE_PERMISSIONS",
    "Resolver",
    "ResolverSet",
    "ResourceAccess",
    "ResourceKind",
    "ScopeType",
    "StoreUnavailable",
    "UnknownPermission",
    "is_contained",
]
