"""Exception handlers that render every failure as ``application/problem+json``."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from publisher_api.common.logging import log_context
from publisher_api.common.problem_details import (
    ApiError,
    ProblemDetailsErrorItem,
    build_problem_details,
    error_items_from_pydantic,
    problem_kind,
)

logger = logging.getLogger("publisher_api.http")
crash_logger = logging.getLogger("publisher_api.errors")

PROBLEM_MEDIA_TYPE = "application/problem+json"
GENERIC_FAILURE = "Internal server error"


def problem_response(
    request: Request,
    status_code: int,
    *,
    detail: str | dict[str, Any] | None = None,
    errors: list[ProblemDetailsErrorItem] | None = None,
    error_type: str | None = None,
    title: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload = build_problem_details(
        status_code=status_code,
        instance=request.url.path,
        request_id=getattr(request.state, "correlation_id", None),
        detail=detail,
        errors=errors,
        error_type=error_type,
        title=title,
    )
    return JSONResponse(
        payload.model_dump(),
        status_code=payload.status,
        headers=headers,
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _log_server_error(event: str, request: Request, **fields: Any) -> None:
    logger.error(
        event,
        extra=log_context(path=request.url.path, method=request.method, **fields),
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback and answer 500 without leaking internals."""

    crash_logger.exception(
        "unhandled_exception",
        extra=log_context(
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
    )
    return problem_response(
        request, 500, detail=GENERIC_FAILURE, error_type=problem_kind(500).type
    )


def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        _log_server_error(
            "http_exception", request, status_code=exc.status_code, detail=exc.detail
        )
    if exc.status_code == 500:
        detail: str | dict[str, Any] | None = GENERIC_FAILURE
    elif isinstance(exc.detail, (str, dict)):
        detail = exc.detail
    else:
        detail = None
    return problem_response(
        request, exc.status_code, detail=detail, headers=getattr(exc, "headers", None)
    )


def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return problem_response(
        request,
        422,
        detail="Invalid request",
        errors=error_items_from_pydantic(exc.errors()),
        error_type=problem_kind(422).type,
    )


def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        _log_server_error(
            "api_error",
            request,
            status_code=exc.status_code,
            error_type=exc.error_type,
            detail=exc.detail,
        )
    return problem_response(
        request,
        exc.status_code,
        detail=exc.detail,
        errors=exc.errors,
        error_type=exc.error_type,
        title=exc.title,
        headers=exc.headers,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "api_error_handler",
    "http_exception_handler",
    "problem_response",
    "request_validation_exception_handler",
    "unhandled_exception_handler",
]
