"""RBAC type definitions used across the stack."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from publisher_db.models import PermissionScope

ScopeType = PermissionScope


@dataclass(frozen=True)
class PermissionDef:
    """Static permission definition."""

    key: str
    scope_type: ScopeType
    label: str
    description: str


class Outcome(str, enum.Enum):
    """Tri-state result of one authorization decision."""

    ALLOWED = "allowed"
    DENIED = "denied"
    ERROR = "error"


class NamespaceAction(str, enum.Enum):
    """Actions supported by legacy namespace grants."""

    READ = "read"
    WRITE = "write"


# ---------------------------------------------------------------------------
# Access requests (tagged variants consumed by resolvers)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DivisionAccess:
    """Division-scoped permission on ``division_id``."""

    permission: str
    division_id: int


@dataclass(frozen=True)
class ResourceAccess:
    """Resource-scoped permissions that one role must grant together on ``game_id``.

    With ``production_aware`` the resolver adds ``change-production`` when the
    game is released, reading the release flag in the same snapshot as the
    role check.
    """

    game_id: int
    permissions: tuple[str, ...]
    production_aware: bool = False


@dataclass(frozen=True)
class NamespaceAccess:
    """Legacy check of ``action`` on a hierarchical resource path."""

    action: NamespaceAction
    resource_path: str


AccessRequest = DivisionAccess | ResourceAccess | NamespaceAccess


class ResourceKind(str, enum.Enum):
    """Graph entities that carry an owning division."""

    DIVISION = "division"
    GROUP = "group"
    ROLE = "role"
    USER = "user"
    GAME = "game"


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of ``Resolver.check`` with a human-readable reason.

    ``error`` is set only when ``outcome`` is :attr:`Outcome.ERROR`.
    """

    outcome: Outcome
    reason: str = ""
    error: Exception | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOWED

    @classmethod
    def allow(cls, reason: str = "") -> AuthorizationResult:
        return cls(outcome=Outcome.ALLOWED, reason=reason)

    @classmethod
    def deny(cls, reason: str = "") -> AuthorizationResult:
        return cls(outcome=Outcome.DENIED, reason=reason)

    @classmethod
    def failed(cls, error: Exception) -> AuthorizationResult:
        return cls(outcome=Outcome.ERROR, reason=str(error), error=error)


__all__ = [
    "AccessRequest",
    "AuthorizationResult",
    "DivisionAccess",
    "NamespaceAccess",
    "NamespaceAction",
    "Outcome",
    "PermissionDef",
    "ResourceAccess",
    "ResourceKind",
    "ScopeType",
]
