from __future__ import annotations

from datetime import datetime
from typing import Literal

from publisher_api.common.schema import BaseSchema


class HealthComponentStatus(BaseSchema):
    name: str
    status: Literal["available", "degraded", "unavailable"]
    detail: str | None = None


class HealthCheckResponse(BaseSchema):
    """Payload returned by the liveness and readiness probes."""

    status: Literal["ok", "error"]
    timestamp: datetime
    components: list[HealthComponentStatus]


__all__ = ["HealthCheckResponse", "HealthComponentStatus"]
