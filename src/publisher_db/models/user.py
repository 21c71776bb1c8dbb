"""User (principal) model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publisher_db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from .access import Group, UserGroup
    from .division import Division
    from .rbac import UserRole

DEFAULT_ACCOUNT_TYPE = "2K-dna"


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Principal identified by an external id unique across every division."""

    __tablename__ = "rbac_users"

    external_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    account_type: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        default=DEFAULT_ACCOUNT_TYPE,
    )
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("divisions.id", ondelete="CASCADE"),
        nullable=False,
    )

    owner: Mapped[Division] = relationship("Division", back_populates="users")
    group_links: Mapped[list[UserGroup]] = relationship(
        "UserGroup",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    role_links: Mapped[list[UserRole]] = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    groups: Mapped[list[Group]] = relationship(
        "Group",
        secondary="rbac_usergroups",
        viewonly=True,
        order_by="Group.id",
    )

    __table_args__ = (Index("ix_rbac_users_owner_id", "owner_id"),)


__all__ = ["DEFAULT_ACCOUNT_TYPE", "User"]
