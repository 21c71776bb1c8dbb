"""ORM models for the authorization graph."""

from .access import Group, GroupRole, UserGroup
from .division import Division
from .game import Game
from .rbac import (
    Permission,
    PermissionScope,
    Role,
    RoleGame,
    RolePermission,
    UserRole,
    UserRoleResource,
)
from .user import DEFAULT_ACCOUNT_TYPE, User

__all__ = [
    "DEFAULT_ACCOUNT_TYPE",
    "Division",
    "Game",
    "Group",
    "GroupRole",
    "Permission",
    "PermissionScope",
    "Role",
    "RoleGame",
    "RolePermission",
    "User",
    "UserGroup",
    "UserRole",
    "UserRoleResource",
]
