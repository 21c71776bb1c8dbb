"""Liveness and readiness probes."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from publisher_api.common.problem_details import ApiError
from publisher_api.core.http import ResolversDep, SettingsDep
from publisher_api.db import ReadSessionDep
from publisher_api.settings import Settings

from .schemas import HealthCheckResponse, HealthComponentStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _api_component(settings: Settings) -> HealthComponentStatus:
    return HealthComponentStatus(name="api", status="available", detail=f"v{settings.app_version}")


def _report(*components: HealthComponentStatus) -> HealthCheckResponse:
    return HealthCheckResponse(
        status="ok", timestamp=datetime.now(tz=UTC), components=list(components)
    )


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Service liveness probe",
    response_model_exclude_none=True,
)
def read_liveness(settings: SettingsDep) -> HealthCheckResponse:
    return _report(_api_component(settings))


@router.get(
    "/ready",
    response_model=HealthCheckResponse,
    summary="Service readiness probe",
    response_model_exclude_none=True,
)
def read_readiness(
    settings: SettingsDep,
    resolvers: ResolversDep,
    db: ReadSessionDep,
) -> HealthCheckResponse:
    """Ready once the store answers; bypass modes report authorization as degraded."""

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("health.ready.database_unavailable", exc_info=True)
        raise ApiError(
            error_type="service_unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from exc

    return _report(
        _api_component(settings),
        HealthComponentStatus(name="database", status="available", detail="connected"),
        HealthComponentStatus(
            name="authorization",
            status="available" if resolvers.mode == "graph" else "degraded",
            detail=resolvers.mode,
        ),
    )


__all__ = ["router"]
