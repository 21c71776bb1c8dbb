"""Group models and the user/group and group/role association rows."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publisher_db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin, utc_now
from publisher_db.types import UTCDateTime

if TYPE_CHECKING:
    from .division import Division
    from .rbac import Role
    from .user import User


class Group(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Named collection of users scoped to one division."""

    __tablename__ = "rbac_groups"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("divisions.id", ondelete="CASCADE"),
        nullable=False,
    )

    owner: Mapped[Division] = relationship("Division", back_populates="groups")
    user_links: Mapped[list[UserGroup]] = relationship(
        "UserGroup",
        back_populates="group",
        cascade="all, delete-orphan",
    )
    role_links: Mapped[list[GroupRole]] = relationship(
        "GroupRole",
        back_populates="group",
        cascade="all, delete-orphan",
    )
    users: Mapped[list[User]] = relationship(
        "User",
        secondary="rbac_usergroups",
        viewonly=True,
        order_by="User.id",
    )
    roles: Mapped[list[Role]] = relationship(
        "Role",
        secondary="rbac_grouproles",
        viewonly=True,
        order_by="Role.id",
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_rbac_groups_owner_name"),
        Index("ix_rbac_groups_owner_id", "owner_id"),
    )


class UserGroup(Base):
    """Membership of a user in a group."""

    __tablename__ = "rbac_usergroups"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    user: Mapped[User] = relationship("User", back_populates="group_links")
    group: Mapped[Group] = relationship("Group", back_populates="user_links")

    __table_args__ = (Index("ix_rbac_usergroups_group_id", "group_id"),)


class GroupRole(Base):
    """Assignment of a role to a group."""

    __tablename__ = "rbac_grouproles"

    group_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rbac_roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    group: Mapped[Group] = relationship("Group", back_populates="role_links")
    role: Mapped[Role] = relationship("Role", back_populates="group_links")

    __table_args__ = (Index("ix_rbac_grouproles_role_id", "role_id"),)


__all__ = ["Group", "GroupRole", "UserGroup"]
