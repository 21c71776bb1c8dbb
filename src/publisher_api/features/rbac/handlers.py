from __future__ import annotations

from fastapi import Request, status
from starlette.responses import Response

from publisher_api.common.exceptions import api_error_handler
from publisher_api.common.problem_details import ApiError

from .service import AlreadyExists, EntityNotFound, RbacAdminError


def rbac_admin_error_handler(request: Request, exc: RbacAdminError) -> Response:
    if isinstance(exc, AlreadyExists):
        error = ApiError(error_type="conflict", status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    elif isinstance(exc, EntityNotFound):
        error = ApiError(error_type="not_found", status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    else:
        error = ApiError(
            error_type="bad_request",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    return api_error_handler(request, error)


__all__ = ["rbac_admin_error_handler"]
