from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request, status

from publisher_api.common.logging import log_context
from publisher_api.core.http import (
    AuthorizationScope,
    PrincipalDep,
    ResolversDep,
    authorize_game,
    require_resource_permission,
    store_guard,
)
from publisher_api.core.rbac.policy import permission_for_webhook_action
from publisher_api.core.rbac.registry import CHANGE_PRODUCTION
from publisher_api.db import ReadSessionDep, WriteSessionDep
from publisher_api.features.rbac.service import RbacAdminService
from publisher_db.models import Game

from .schemas import GameOut, GameUpdate, WebhookAck, WebhookEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])

GamePath = Annotated[int, Path(description="Game identifier", alias="gameId")]


def _serialize_game(game: Game) -> GameOut:
    return GameOut(
        id=game.id,
        name=game.name,
        released=game.released,
        owner_id=game.owner_id,
        created_at=game.created_at,
    )


@router.get(
    "/{gameId}",
    response_model=GameOut,
    summary="Retrieve a game",
)
def read_game(
    game_id: GamePath,
    _scope: Annotated[AuthorizationScope, Depends(require_resource_permission("read"))],
    session: ReadSessionDep,
) -> GameOut:
    return _serialize_game(RbacAdminService(session=session).get_game(game_id))


@router.patch(
    "/{gameId}",
    response_model=GameOut,
    summary="Update a game",
)
def update_game(
    game_id: GamePath,
    payload: GameUpdate,
    request: Request,
    principal: PrincipalDep,
    resolvers: ResolversDep,
    session: WriteSessionDep,
) -> GameOut:
    """Update name or release state of a game.

    Released games need ``change-production`` next to ``update``; so does any
    change of the release flag itself.
    """

    service = RbacAdminService(session=session)
    with store_guard(principal, scope_type="game", scope_id=game_id):
        current = service.get_game(game_id)
    permissions = ["update"]
    if payload.released is not None and payload.released != current.released:
        permissions.append(CHANGE_PRODUCTION)
    authorize_game(request, resolvers.graph, principal, session, game_id, permissions)

    game = service.update_game(game_id, name=payload.name, released=payload.released)
    logger.info(
        "games.updated",
        extra=log_context(
            principal=principal.external_id,
            game_id=game.id,
            released=game.released,
        ),
    )
    return _serialize_game(game)


@router.post(
    "/{gameId}/webhooks",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Accept a webhook event for a game",
)
def receive_webhook(
    game_id: GamePath,
    event: WebhookEvent,
    request: Request,
    principal: PrincipalDep,
    resolvers: ResolversDep,
    session: ReadSessionDep,
) -> WebhookAck:
    permission = permission_for_webhook_action(event.action)
    authorize_game(request, resolvers.graph, principal, session, game_id, [permission])
    logger.info(
        "games.webhook.accepted",
        extra=log_context(
            principal=principal.external_id,
            game_id=game_id,
            action=str(event.action),
            permission=permission,
        ),
    )
    return WebhookAck(
        code=status.HTTP_200_OK,
        message=f"{event.action} accepted for game {game_id}",
        permission=permission,
    )


__all__ = ["router"]
