"""Division (tenant) model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publisher_db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from .access import Group
    from .game import Game
    from .rbac import Role
    from .user import User


class Division(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Top-level tenant owning users, groups, roles, and games."""

    __tablename__ = "divisions"

    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    users: Mapped[list[User]] = relationship(
        "User",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    groups: Mapped[list[Group]] = relationship(
        "Group",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    roles: Mapped[list[Role]] = relationship(
        "Role",
        back_populates="owner",
        cascade="all, delete-orphan",
    )
    games: Mapped[list[Game]] = relationship(
        "Game",
        back_populates="owner",
        cascade="all, delete-orphan",
    )


__all__ = ["Division"]
