"""Game model: the protected resource unit for resource-scoped checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from publisher_db.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from .division import Division
    from .rbac import Role, RoleGame


class Game(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Title owned by a division."""

    __tablename__ = "games"

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    released: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
    )
    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("divisions.id", ondelete="CASCADE"),
        nullable=False,
    )

    owner: Mapped[Division] = relationship("Division", back_populates="games")
    role_links: Mapped[list[RoleGame]] = relationship(
        "RoleGame",
        back_populates="game",
        cascade="all, delete-orphan",
    )
    roles: Mapped[list[Role]] = relationship(
        "Role",
        secondary="rbac_rolegames",
        viewonly=True,
        order_by="Role.id",
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_games_owner_name"),
        Index("ix_games_owner_id", "owner_id"),
    )


__all__ = ["Game"]
