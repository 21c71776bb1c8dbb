"""Top-level router that mounts every feature under the API prefix."""

from __future__ import annotations

from fastapi import APIRouter

from publisher_api.features.games.router import router as games_router
from publisher_api.features.rbac.router import router as rbac_router
from publisher_api.features.resources.router import router as resources_router


def create_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(rbac_router)
    api_router.include_router(games_router)
    api_router.include_router(resources_router)
    return api_router


__all__ = ["create_api_router"]
