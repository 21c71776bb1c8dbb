from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from publisher_api.common.schema import BaseSchema
from publisher_api.core.rbac.policy import WebhookAction


class GameOut(BaseSchema):
    """API representation of a game."""

    id: int
    name: str
    released: bool
    owner_id: int
    created_at: datetime


class GameUpdate(BaseSchema):
    """Partial update; toggling ``released`` needs ``change-production``."""

    name: str | None = Field(default=None, min_length=1, max_length=256)
    released: bool | None = None


class WebhookEvent(BaseSchema):
    action: WebhookAction
    payload: dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseSchema):
    code: int
    message: str
    permission: str


__all__ = ["GameOut", "GameUpdate", "WebhookAck", "WebhookEvent"]
