"""Legacy namespace-guarded resource paths."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from publisher_api.core.http import AuthorizationScope, require_namespace_permission
from publisher_api.core.rbac.types import NamespaceAction

from .schemas import ResourceAccessOut

router = APIRouter(prefix="/resources", tags=["resources"])

ReadScope = Annotated[
    AuthorizationScope,
    Depends(require_namespace_permission(NamespaceAction.READ)),
]
WriteScope = Annotated[
    AuthorizationScope,
    Depends(require_namespace_permission(NamespaceAction.WRITE)),
]


def _serialize_scope(scope: AuthorizationScope, action: NamespaceAction) -> ResourceAccessOut:
    return ResourceAccessOut(
        path=str(scope.scope_id),
        action=action,
        principal=scope.principal.external_id,
    )


@router.get(
    "/{path:path}",
    response_model=ResourceAccessOut,
    summary="Check read access to a resource path",
)
def read_resource(scope: ReadScope) -> ResourceAccessOut:
    return _serialize_scope(scope, NamespaceAction.READ)


@router.put(
    "/{path:path}",
    response_model=ResourceAccessOut,
    summary="Check write access to a resource path",
)
def write_resource(scope: WriteScope) -> ResourceAccessOut:
    return _serialize_scope(scope, NamespaceAction.WRITE)


__all__ = ["router"]
