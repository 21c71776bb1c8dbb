"""ASGI application factory."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, cast

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .api.router import create_api_router
from .app.lifecycles import create_application_lifespan
from .common.exceptions import (
    api_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .common.problem_details import ApiError
from .core.http.errors import register_auth_exception_handlers
from .features.health.router import router as health_router
from .features.rbac.handlers import rbac_admin_error_handler
from .features.rbac.service import RbacAdminError
from .settings import Settings, get_settings

API_PREFIX = "/api"

type ExceptionHandler = Callable[[Request, Exception], Response | Awaitable[Response]]

# Most specific first; ``Exception`` is the catch-all.
_HANDLERS: tuple[tuple[type[Exception], Callable[..., Any]], ...] = (
    (RequestValidationError, request_validation_exception_handler),
    (HTTPException, http_exception_handler),
    (StarletteHTTPException, http_exception_handler),
    (ApiError, api_error_handler),
    (RbacAdminError, rbac_admin_error_handler),
    (Exception, unhandled_exception_handler),
)


def _install_exception_handlers(app: FastAPI) -> None:
    for exc_type, handler in _HANDLERS:
        app.add_exception_handler(exc_type, cast(ExceptionHandler, handler))
    register_auth_exception_handlers(app)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for ``settings`` (environment settings when omitted).

    Logging is configured before anything else so import-time loggers pick up
    the root handler.
    """

    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=create_application_lifespan(settings=settings),
    )
    app.state.settings = settings

    _install_exception_handlers(app)
    register_middleware(app, settings=settings)
    app.include_router(health_router, include_in_schema=False)
    app.include_router(create_api_router(), prefix=API_PREFIX)
    return app


__all__ = ["API_PREFIX", "create_app"]
