from __future__ import annotations

from publisher_api.common.schema import BaseSchema
from publisher_api.core.rbac.types import NamespaceAction


class ResourceAccessOut(BaseSchema):
    """Result of a legacy namespace check on a resource path."""

    path: str
    action: NamespaceAction
    principal: str


__all__ = ["ResourceAccessOut"]
