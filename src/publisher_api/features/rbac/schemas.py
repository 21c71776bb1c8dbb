from __future__ import annotations

from datetime import datetime

from pydantic import Field

from publisher_api.common.schema import BaseSchema
from publisher_api.core.rbac.types import ScopeType


class PermissionOut(BaseSchema):
    """API representation of a permission from the catalog."""

    id: str
    scope: ScopeType
    label: str
    description: str


class GameRef(BaseSchema):
    id: int
    name: str
    released: bool


class RoleOut(BaseSchema):
    """API representation of a role."""

    id: int
    name: str
    owner_id: int
    created_at: datetime


class RoleDetail(RoleOut):
    """Role with the permissions and games it carries."""

    permissions: list[str] = Field(default_factory=list)
    games: list[GameRef] = Field(default_factory=list)


class GroupOut(BaseSchema):
    """API representation of a group."""

    id: int
    name: str
    owner_id: int
    created_at: datetime


class GroupDetail(GroupOut):
    roles: list[RoleDetail] = Field(default_factory=list)


class UserOut(BaseSchema):
    """API representation of a user account."""

    id: int
    name: str
    account_type: str
    owner_id: int
    created_at: datetime


class UserAbout(UserOut):
    """Who-am-I payload: a user with every group, role, permission and game."""

    division: str
    groups: list[GroupDetail] = Field(default_factory=list)


class UserCreate(BaseSchema):
    """Payload for creating a user account in a division."""

    name: str = Field(min_length=1, max_length=128)
    account_type: str | None = Field(default=None, max_length=128)


class NamespaceCreate(BaseSchema):
    namespace: str = Field(min_length=1, max_length=256)


class NamespaceGrant(BaseSchema):
    """Legacy namespace granted through a (user, role) pair."""

    user_id: int
    role_id: int
    namespace: str = Field(min_length=1, max_length=256)


class NamespaceGrantList(BaseSchema):
    user_id: int
    role_id: int
    namespaces: list[str]


__all__ = [
    "GameRef",
    "GroupDetail",
    "GroupOut",
    "NamespaceCreate",
    "NamespaceGrant",
    "NamespaceGrantList",
    "PermissionOut",
    "RoleDetail",
    "RoleOut",
    "UserAbout",
    "UserCreate",
    "UserOut",
]
