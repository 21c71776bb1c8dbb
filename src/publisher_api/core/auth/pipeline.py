"""Request authentication pipeline used by FastAPI dependencies.

Credential validation happens upstream (gateway / identity provider). This
module only turns the already-validated identity into a principal.
"""

from __future__ import annotations

from fastapi import Request

from publisher_api.settings import Settings

from .errors import AuthenticationError
from .principal import AuthenticatedPrincipal, AuthVia


def dev_principal(settings: Settings) -> AuthenticatedPrincipal:
    """Return the synthetic principal used when authorization is bypassed."""

    return AuthenticatedPrincipal(
        external_id=settings.auth_disabled_user_external_id,
        auth_via=AuthVia.DEV,
        account_type=settings.auth_disabled_user_account_type,
    )


def _extract_external_id(request: Request, header_name: str) -> str | None:
    candidate = request.headers.get(header_name)
    if candidate is None:
        return None
    candidate = candidate.strip()
    return candidate or None


def authenticate_request(request: Request, settings: Settings) -> AuthenticatedPrincipal:
    """Authenticate an incoming request to a principal.

    Development modes fall back to the configured synthetic principal when the
    identity header is absent; ``graph`` mode requires the header.
    """

    external_id = _extract_external_id(request, settings.auth_principal_header)
    if external_id is not None:
        return AuthenticatedPrincipal(external_id=external_id, auth_via=AuthVia.HEADER)
    if settings.auth_bypassed:
        return dev_principal(settings)
    raise AuthenticationError("Authentication required")


__all__ = ["authenticate_request", "dev_principal"]
