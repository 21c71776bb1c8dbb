"""HTTP middleware: CORS and request correlation."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from publisher_api.settings import Settings

from .logging import bind_request_context, clear_request_context, log_context

REQUEST_ID_HEADER = "X-Request-ID"

logger = logging.getLogger("publisher_api.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it finishes.

    A caller-supplied ``X-Request-ID`` is honoured, otherwise a UUID is minted.
    The id is echoed on the response and exposed as
    ``request.state.correlation_id`` for problem payloads.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.correlation_id = request_id
        bind_request_context(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # The traceback is logged by the unhandled exception handler.
            logger.error("request.error", extra=self._fields(request, started, None))
            raise
        else:
            logger.info(
                "request.complete", extra=self._fields(request, started, response.status_code)
            )
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _fields(request: Request, started: float, status_code: int | None) -> dict[str, object]:
        return log_context(
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )


def register_middleware(app: FastAPI, *, settings: Settings) -> None:
    if settings.server_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.server_cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(RequestContextMiddleware)


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "register_middleware"]
