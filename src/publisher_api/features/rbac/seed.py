"""Sample authorization graph for local development and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from publisher_api.common.logging import log_context

from .service import RbacAdminService

logger = logging.getLogger(__name__)

SAMPLE_DIVISION = "t2"
EMPTY_DIVISION = "empty div"
SAMPLE_ACCOUNT_TYPE = "dev-login"

SAMPLE_USERS: tuple[str, ...] = (
    "debug@admin",
    "teddanson@thegood.place",
    "julia@vice.president",
    "test@user",
    "guest@user",
)
SAMPLE_GAMES: tuple[str, ...] = (
    "XCOM 2",
    "War of the Chosen",
    "Civilization VI",
    "Gathering Storm",
    "Rise and Fall",
)
ALL_GAMES = "*"

# role name -> (permissions, games)
SAMPLE_ROLES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "content admin": (
        ("create", "read", "update", "change-production", "delete", "all-games-access"),
        (ALL_GAMES,),
    ),
    "hr admin": (("remove-account", "create-account"), ()),
    "rbac admin": (("rbac-admin",), ()),
    "civ editor": (("read", "update", "delete"), ("Civilization VI",)),
    "civ admin": (("read", "update", "delete", "change-production"), ("Civilization VI",)),
    "viewer-all": (("read", "all-games-access"), (ALL_GAMES,)),
}

# group name -> (roles, members)
SAMPLE_GROUPS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "viewers": (("viewer-all",), ("test@user",)),
    "civ devs": (("viewer-all", "civ editor"), ("julia@vice.president",)),
    "civ admin": (("civ admin",), ("teddanson@thegood.place",)),
    "devops": (("content admin",), ("teddanson@thegood.place",)),
    "admins": (("content admin", "hr admin", "rbac admin"), ("debug@admin",)),
}


@dataclass
class SampleGraph:
    """Identifiers of the seeded entities, keyed by name."""

    division_id: int
    empty_division_id: int
    users: dict[str, int] = field(default_factory=dict)
    games: dict[str, int] = field(default_factory=dict)
    roles: dict[str, int] = field(default_factory=dict)
    groups: dict[str, int] = field(default_factory=dict)


def seed_sample_graph(session: Session) -> SampleGraph:
    """Create the sample divisions, users, games, roles and groups.

    The caller owns the transaction. The permission catalog is synchronized
    first so role permissions resolve.
    """

    service = RbacAdminService(session=session)
    service.sync_permission_registry()

    empty = service.create_division(EMPTY_DIVISION)
    division = service.create_division(SAMPLE_DIVISION)
    graph = SampleGraph(division_id=division.id, empty_division_id=empty.id)

    for name in SAMPLE_GAMES:
        graph.games[name] = service.create_game(division.id, name).id

    for external_id in SAMPLE_USERS:
        user = service.create_user(division.id, external_id, account_type=SAMPLE_ACCOUNT_TYPE)
        graph.users[external_id] = user.id

    for role_name, (permissions, games) in SAMPLE_ROLES.items():
        role = service.create_role(division.id, role_name)
        graph.roles[role_name] = role.id
        for permission in permissions:
            service.add_permission_to_role(role.id, permission)
        targets = SAMPLE_GAMES if ALL_GAMES in games else games
        for game_name in targets:
            service.add_game_to_role(role.id, graph.games[game_name])

    for group_name, (roles, members) in SAMPLE_GROUPS.items():
        group = service.create_group(division.id, group_name)
        graph.groups[group_name] = group.id
        for role_name in roles:
            service.add_role_to_group(group.id, graph.roles[role_name])
        for external_id in members:
            service.add_user_to_group(group.id, graph.users[external_id])

    logger.info(
        "rbac.seed.complete",
        extra=log_context(
            division_id=division.id,
            users=len(graph.users),
            roles=len(graph.roles),
            groups=len(graph.groups),
            games=len(graph.games),
        ),
    )
    return graph


__all__ = ["SampleGraph", "seed_sample_graph"]
