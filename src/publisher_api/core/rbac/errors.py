"""Error taxonomy for authorization decisions.

A denial is a successful decision, never one of these errors.
"""

from __future__ import annotations


class AuthorizationError(ValueError):
    """Base class for failures to evaluate an authorization decision."""

    kind = "authorization_error"


class PrincipalNotFound(AuthorizationError):
    """Raised when the principal does not map to a known user."""

    kind = "principal_not_found"

    def __init__(self, external_id: str) -> None:
        self.external_id = external_id
        super().__init__(f"Principal '{external_id}' does not map to a known user")


class InvalidRequest(AuthorizationError):
    """Raised for malformed requests (empty permission set, bad namespace)."""

    kind = "invalid_request"


class InvalidInput(InvalidRequest):
    """Raised by the namespace matcher when a path does not start with '/'."""

    kind = "invalid_input"


class UnknownPermission(AuthorizationError):
    """Raised when a permission id is outside the catalog."""

    kind = "unknown_permission"

    def __init__(self, permission: str) -> None:
        self.permission = permission
        super().__init__(f"Permission '{permission}' is not registered")


class StoreUnavailable(AuthorizationError):
    """Raised when the backing store query fails or times out."""

    kind = "store_unavailable"


__all__ = [
    "AuthorizationError",
    "InvalidInput",
    "InvalidRequest",
    "PrincipalNotFound",
    "StoreUnavailable",
    "UnknownPermission",
]
