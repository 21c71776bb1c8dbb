"""Role, permission, and grant models for the authorization graph."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publisher_db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin, utc_now
from publisher_db.types import UTCDateTime

if TYPE_CHECKING:
    from .access import Group, GroupRole
    from .division import Division
    from .game import Game
    from .user import User


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class PermissionScope(str, Enum):
    """Whether a permission is checked per division or per game."""

    DIVISION = "division"
    RESOURCE = "resource"


permission_scope_enum = SAEnum(
    PermissionScope,
    name="permission_scope",
    native_enum=False,
    length=20,
    values_callable=_enum_values,
)


class Permission(Base):
    """Catalog entry keyed by its permission identifier."""

    __tablename__ = "rbac_permissions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    scope: Mapped[PermissionScope] = mapped_column(permission_scope_enum, nullable=False)
    label: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False, default="")

    role_links: Mapped[list[RolePermission]] = relationship(
        "RolePermission",
        back_populates="permission",
        cascade="all, delete-orphan",
    )


class Role(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Named bundle of permissions optionally bound to a set of games."""

    __tablename__ = "rbac_roles"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("divisions.id", ondelete="CASCADE"),
        nullable=False,
    )

    owner: Mapped[Division] = relationship("Division", back_populates="roles")
    group_links: Mapped[list[GroupRole]] = relationship(
        "GroupRole",
        back_populates="role",
        cascade="all, delete-orphan",
    )
    permission_links: Mapped[list[RolePermission]] = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
    )
    game_links: Mapped[list[RoleGame]] = relationship(
        "RoleGame",
        back_populates="role",
        cascade="all, delete-orphan",
    )
    user_links: Mapped[list[UserRole]] = relationship(
        "UserRole",
        back_populates="role",
        cascade="all, delete-orphan",
    )
    groups: Mapped[list[Group]] = relationship(
        "Group",
        secondary="rbac_grouproles",
        viewonly=True,
        order_by="Group.id",
    )
    permissions: Mapped[list[Permission]] = relationship(
        "Permission",
        secondary="rbac_rolepermissions",
        viewonly=True,
        order_by="Permission.id",
    )
    games: Mapped[list[Game]] = relationship(
        "Game",
        secondary="rbac_rolegames",
        viewonly=True,
        order_by="Game.id",
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_rbac_roles_owner_name"),
        Index("ix_rbac_roles_owner_id", "owner_id"),
    )


class RolePermission(Base):
    """Permission carried by a role."""

    __tablename__ = "rbac_rolepermissions"

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    permission_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("rbac_permissions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    role: Mapped[Role] = relationship("Role", back_populates="permission_links")
    permission: Mapped[Permission] = relationship("Permission", back_populates="role_links")

    __table_args__ = (Index("ix_rbac_rolepermissions_permission_id", "permission_id"),)


class RoleGame(Base):
    """Game a role applies to for resource-scoped checks."""

    __tablename__ = "rbac_rolegames"

    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    game_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("games.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    role: Mapped[Role] = relationship("Role", back_populates="game_links")
    game: Mapped[Game] = relationship("Game", back_populates="role_links")

    __table_args__ = (Index("ix_rbac_rolegames_game_id", "game_id"),)


class UserRole(IntegerPrimaryKeyMixin, Base):
    """Direct (legacy) role grant to a user, scoped by namespace resources."""

    __tablename__ = "rbac_userroles"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_roles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    user: Mapped[User] = relationship("User", back_populates="role_links")
    role: Mapped[Role] = relationship("Role", back_populates="user_links")
    resources: Mapped[list[UserRoleResource]] = relationship(
        "UserRoleResource",
        back_populates="user_role",
        cascade="all, delete-orphan",
        order_by="UserRoleResource.id",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_rbac_userroles_user_role"),
        Index("ix_rbac_userroles_role_id", "role_id"),
    )


class UserRoleResource(IntegerPrimaryKeyMixin, Base):
    """Namespace pattern granted through a (user, role) pair."""

    __tablename__ = "rbac_userroleresources"

    user_role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_userroles.id", ondelete="CASCADE"),
        nullable=False,
    )
    namespace: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    user_role: Mapped[UserRole] = relationship("UserRole", back_populates="resources")

    __table_args__ = (
        UniqueConstraint(
            "user_role_id",
            "namespace",
            name="uq_rbac_userroleresources_user_role_namespace",
        ),
    )


__all__ = [
    "Permission",
    "PermissionScope",
    "Role",
    "RoleGame",
    "RolePermission",
    "UserRole",
    "UserRoleResource",
    "permission_scope_enum",
]
