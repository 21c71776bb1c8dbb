"""RFC 7807 style error payloads shared by every route."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, NamedTuple

from fastapi import status

from .schema import BaseSchema

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})


class ProblemKind(NamedTuple):
    """Machine-readable ``type`` and human ``title`` for one status code."""

    type: str
    title: str


PROBLEM_KINDS: dict[int, ProblemKind] = {
    status.HTTP_400_BAD_REQUEST: ProblemKind("bad_request", "Bad request"),
    status.HTTP_401_UNAUTHORIZED: ProblemKind("unauthorized", "Unauthorized"),
    status.HTTP_403_FORBIDDEN: ProblemKind("forbidden", "Forbidden"),
    status.HTTP_404_NOT_FOUND: ProblemKind("not_found", "Not found"),
    status.HTTP_409_CONFLICT: ProblemKind("conflict", "Conflict"),
    422: ProblemKind("validation_error", "Validation error"),
    status.HTTP_500_INTERNAL_SERVER_ERROR: ProblemKind("internal_error", "Internal server error"),
    status.HTTP_503_SERVICE_UNAVAILABLE: ProblemKind("service_unavailable", "Service unavailable"),
}


def problem_kind(status_code: int) -> ProblemKind:
    return PROBLEM_KINDS.get(status_code, ProblemKind("error", "Error"))


class ProblemDetailsErrorItem(BaseSchema):
    """One field-level failure, mostly produced by request validation."""

    path: str | None = None
    message: str
    code: str | None = None


class ProblemDetails(BaseSchema):
    type: str
    title: str
    status: int
    detail: str | dict[str, Any] | None = None
    instance: str
    request_id: str | None = None
    errors: list[ProblemDetailsErrorItem] | None = None


class ApiError(RuntimeError):
    """Raised by routes and dependencies to short-circuit with a problem response."""

    def __init__(
        self,
        *,
        error_type: str,
        status_code: int,
        detail: str | dict[str, Any] | None = None,
        title: str | None = None,
        errors: list[ProblemDetailsErrorItem] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        summary = detail if isinstance(detail, str) and detail else (title or error_type)
        super().__init__(summary)
        self.error_type = error_type
        self.status_code = status_code
        self.detail = detail
        self.title = title
        self.errors = errors
        self.headers = headers


def _dotted_path(loc: Sequence[Any]) -> str | None:
    path = ""
    for part in loc:
        if not path and part in _LOCATION_PREFIXES:
            continue
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or None


def error_items_from_pydantic(errors: Iterable[dict[str, Any]]) -> list[ProblemDetailsErrorItem]:
    """Flatten pydantic ``errors()`` output into problem error items."""

    items = []
    for error in errors:
        loc = error.get("loc")
        code = error.get("type")
        items.append(
            ProblemDetailsErrorItem(
                path=_dotted_path(loc) if isinstance(loc, (list, tuple)) else None,
                message=str(error.get("msg") or "Invalid value"),
                code=str(code) if code else None,
            )
        )
    return items


def build_problem_details(
    *,
    status_code: int,
    instance: str,
    request_id: str | None,
    detail: str | dict[str, Any] | None = None,
    errors: list[ProblemDetailsErrorItem] | None = None,
    error_type: str | None = None,
    title: str | None = None,
) -> ProblemDetails:
    kind = problem_kind(status_code)
    return ProblemDetails(
        type=error_type or kind.type,
        title=title or kind.title,
        status=status_code,
        detail=detail,
        instance=instance,
        request_id=request_id,
        errors=errors,
    )


__all__ = [
    "PROBLEM_KINDS",
    "ApiError",
    "ProblemDetails",
    "ProblemDetailsErrorItem",
    "ProblemKind",
    "build_problem_details",
    "error_items_from_pydantic",
    "problem_kind",
]
