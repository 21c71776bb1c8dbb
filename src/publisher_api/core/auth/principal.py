"""Lightweight identity representation produced by the auth pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class AuthVia(str, enum.Enum):
    """Transport used to authenticate the request."""

    HEADER = "header"
    DEV = "dev"


@dataclass(slots=True, frozen=True)
class AuthenticatedPrincipal:
    """Identity information available to downstream handlers.

    ``external_id`` is the stable identifier issued by the identity provider
    (usually an email address); it maps to ``User.external_id``.
    """

    external_id: str
    auth_via: AuthVia
    account_type: str | None = None
