"""Exception handlers that translate auth and authorization errors to HTTP responses."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import cast

from fastapi import FastAPI, Request, status
from starlette.responses import Response

from publisher_api.common.exceptions import api_error_handler
from publisher_api.common.problem_details import ApiError

from ..auth.errors import AuthenticationError, PermissionDeniedError
from ..rbac.errors import (
    AuthorizationError,
    InvalidRequest,
    PrincipalNotFound,
    StoreUnavailable,
    UnknownPermission,
)

type HttpExceptionHandler = Callable[[Request, Exception], Response | Awaitable[Response]]

logger = logging.getLogger(__name__)

_AUTHORIZATION_ERROR_TYPES: tuple[tuple[type[AuthorizationError], str, int], ...] = (
    (PrincipalNotFound, "not_found", status.HTTP_404_NOT_FOUND),
    (InvalidRequest, "bad_request", status.HTTP_400_BAD_REQUEST),
    (UnknownPermission, "internal_error", status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StoreUnavailable, "service_unavailable", status.HTTP_503_SERVICE_UNAVAILABLE),
)


def authorization_error_status(exc: AuthorizationError) -> tuple[str, int]:
    """Return the Problem Details type and HTTP status for ``exc``."""

    for error_cls, error_type, status_code in _AUTHORIZATION_ERROR_TYPES:
        if isinstance(exc, error_cls):
            return error_type, status_code
    return "internal_error", status.HTTP_500_INTERNAL_SERVER_ERROR


def _handle_authentication_error(request: Request, exc: AuthenticationError) -> Response:
    """Translate auth failures into HTTP 401 responses."""

    error = ApiError(
        error_type="unauthorized",
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=str(exc) or "Authentication required",
    )
    return api_error_handler(request, error)


def _handle_permission_error(request: Request, exc: PermissionDeniedError) -> Response:
    """Translate permission denials into HTTP 403 responses."""

    error = ApiError(
        error_type="forbidden",
        status_code=status.HTTP_403_FORBIDDEN,
        detail=str(exc) or "Forbidden",
    )
    return api_error_handler(request, error)


def _handle_authorization_error(request: Request, exc: AuthorizationError) -> Response:
    """Translate failures to evaluate a decision into 4xx/5xx responses."""

    error_type, status_code = authorization_error_status(exc)
    detail = str(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        # Detail stays generic; the kind is in the logs.
        detail = "Authorization could not be evaluated"
    error = ApiError(error_type=error_type, status_code=status_code, detail=detail)
    return api_error_handler(request, error)


def register_auth_exception_handlers(app: FastAPI) -> None:
    """Attach auth/RBAC handlers to the FastAPI app."""

    app.add_exception_handler(
        AuthenticationError,
        cast(HttpExceptionHandler, _handle_authentication_error),
    )
    app.add_exception_handler(
        PermissionDeniedError,
        cast(HttpExceptionHandler, _handle_permission_error),
    )
    app.add_exception_handler(
        AuthorizationError,
        cast(HttpExceptionHandler, _handle_authorization_error),
    )


__all__ = ["authorization_error_status", "register_auth_exception_handlers"]
