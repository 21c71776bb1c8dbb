"""Static policy rules that derive required permissions from a request."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Protocol

from .registry import CHANGE_PRODUCTION

# Legacy namespace actions map onto resource permissions
NAMESPACE_ACTION_PERMISSIONS: dict[str, str] = {
    "read": "read",
    "write": "update",
}


class WebhookAction(str, enum.Enum):
    """Actions carried by inbound webhook payloads."""

    CREATE = "CREATE"
    DELETE = "DELETE"
    MODIFY = "MODIFY"


WEBHOOK_ACTION_PERMISSIONS: dict[WebhookAction, str] = {
    WebhookAction.CREATE: "create",
    WebhookAction.DELETE: "delete",
    WebhookAction.MODIFY: "update",
}


class ReleaseAware(Protocol):
    released: bool


def required_permissions(base: Iterable[str], game: ReleaseAware) -> tuple[str, ...]:
    """Return ``base`` plus ``change-production`` when ``game`` is released."""

    keys = list(dict.fromkeys(base))
    if game.released and CHANGE_PRODUCTION not in keys:
        keys.append(CHANGE_PRODUCTION)
    return tuple(keys)


def permission_for_webhook_action(action: WebhookAction | str) -> str:
    return WEBHOOK_ACTION_PERMISSIONS[WebhookAction(action)]


__all__ = [
    "NAMESPACE_ACTION_PERMISSIONS",
    "WEBHOOK_ACTION_PERMISSIONS",
    "ReleaseAware",
    "WebhookAction",
    "permission_for_webhook_action",
    "required_permissions",
]
