from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from publisher_api.common.logging import log_context
from publisher_api.core.rbac.errors import InvalidRequest, UnknownPermission
from publisher_api.core.rbac.namespace import SEPARATOR
from publisher_api.core.rbac.registry import PERMISSIONS, normalize_permission_key
from publisher_db.models import (
    DEFAULT_ACCOUNT_TYPE,
    Division,
    Game,
    Group,
    GroupRole,
    Permission,
    Role,
    RoleGame,
    RolePermission,
    User,
    UserGroup,
    UserRole,
    UserRoleResource,
)

from .repository import AuthorizationGraphStore

logger = logging.getLogger(__name__)

CROSS_DIVISION_MESSAGE = "Resources from different divisions cannot be associated"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RbacAdminError(ValueError):
    """Base class for administrative mutation errors."""


class AlreadyExists(RbacAdminError):
    """Raised when a name, external id or association already exists."""


class EntityNotFound(RbacAdminError):
    """Raised when an entity or association cannot be located."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} '{identifier}' not found")


class CrossDivisionAssociation(InvalidRequest):
    """Raised when an association would join entities of different divisions."""

    def __init__(self) -> None:
        super().__init__(CROSS_DIVISION_MESSAGE)


class SelfRemoval(InvalidRequest):
    """Raised when a user attempts to remove their own account."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalize_name(value: str, *, field: str) -> str:
    candidate = (value or "").strip()
    if not candidate:
        raise InvalidRequest(f"{field} is required")
    return candidate


def _normalize_namespace(value: str) -> str:
    candidate = (value or "").strip()
    if not candidate.startswith(SEPARATOR):
        raise InvalidRequest("Namespace must start with '/'")
    return candidate


def _ensure_same_division(*owner_ids: int) -> None:
    if len(set(owner_ids)) > 1:
        raise CrossDivisionAssociation()


# ---------------------------------------------------------------------------
# Admin service
# ---------------------------------------------------------------------------


class RbacAdminService:
    """Graph mutations and listings used by the RBAC admin routes.

    Each public mutation flushes its rows; the surrounding request session
    commits or rolls back the whole change.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session
        self._store = AuthorizationGraphStore(session)

    @property
    def store(self) -> AuthorizationGraphStore:
        return self._store

    # ------------- registry sync -----------------

    def sync_permission_registry(self) -> None:
        """Upsert the permission catalog into ``rbac_permissions`` and drop stale rows."""

        logger.debug("rbac.permissions.sync.start")

        result = self._session.execute(select(Permission))
        existing = {permission.id: permission for permission in result.scalars().all()}
        desired_keys = {definition.key for definition in PERMISSIONS}

        for definition in PERMISSIONS:
            current = existing.get(definition.key)
            if current is None:
                self._session.add(
                    Permission(
                        id=definition.key,
                        scope=definition.scope_type,
                        label=definition.label,
                        description=definition.description,
                    )
                )
                continue
            current.scope = definition.scope_type
            current.label = definition.label
            current.description = definition.description

        stale_keys = set(existing) - desired_keys
        if stale_keys:
            self._session.execute(delete(Permission).where(Permission.id.in_(tuple(stale_keys))))

        self._session.flush()

        logger.debug(
            "rbac.permissions.sync.success",
            extra={"total": len(PERMISSIONS), "removed": len(stale_keys)},
        )

    # ------------- lookups -----------------------

    def _require_division(self, division_id: int) -> Division:
        division = self._store.get_division(division_id)
        if division is None:
            raise EntityNotFound("Division", division_id)
        return division

    def _require_user(self, user_id: int) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise EntityNotFound("User", user_id)
        return user

    def _require_group(self, group_id: int) -> Group:
        group = self._store.get_group(group_id)
        if group is None:
            raise EntityNotFound("Group", group_id)
        return group

    def _require_role(self, role_id: int) -> Role:
        role = self._store.get_role(role_id)
        if role is None:
            raise EntityNotFound("Role", role_id)
        return role

    def _require_game(self, game_id: int) -> Game:
        game = self._store.get_game(game_id)
        if game is None:
            raise EntityNotFound("Game", game_id)
        return game

    def _require_permission(self, permission_id: str) -> Permission:
        try:
            key = normalize_permission_key(permission_id)
        except UnknownPermission as exc:
            raise InvalidRequest(str(exc)) from exc
        permission = self._store.get_permission(key)
        if permission is None:
            raise EntityNotFound("Permission", key)
        return permission

    def get_user(self, user_id: int) -> User:
        return self._require_user(user_id)

    def get_game(self, game_id: int) -> Game:
        return self._require_game(game_id)

    def get_user_by_external_id(self, external_id: str) -> User:
        user = self._store.get_user_by_external_id(external_id)
        if user is None:
            raise EntityNotFound("User", external_id)
        return user

    def access_summary(self, external_id: str) -> User:
        """Return the user with groups, roles, permissions and games loaded."""

        user = self.get_user_by_external_id(external_id)
        summary = self._store.user_access_summary(user.id)
        if summary is None:
            raise EntityNotFound("User", external_id)
        return summary

    def effective_roles(self, user_id: int) -> list[Role]:
        """Roles reaching the user through groups of its own division.

        Each role comes back with its permissions and games loaded, which is
        what a resource decision for this user can draw on.
        """

        user = self._require_user(user_id)
        groups = self._store.list_groups_for_user(user.id, division_id=user.owner_id)
        return self._store.list_roles_for_groups(group.id for group in groups)

    def list_permissions(self) -> list[Permission]:
        return self._store.list_permissions()

    # ------------- divisions and games -----------

    def create_division(self, name: str) -> Division:
        normalized = _normalize_name(name, field="Division name")
        if self._store.get_division_by_name(normalized) is not None:
            raise AlreadyExists(f"Division '{normalized}' already exists")
        division = Division(name=normalized)
        self._session.add(division)
        try:
            self._session.flush([division])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Division '{normalized}' already exists") from exc
        logger.info("rbac.division.created", extra=log_context(division_id=division.id))
        return division

    def list_divisions(self) -> list[Division]:
        return self._store.list_divisions()

    def create_game(self, division_id: int, name: str, *, released: bool = False) -> Game:
        self._require_division(division_id)
        normalized = _normalize_name(name, field="Game name")
        if self._store.get_game_by_name(division_id, normalized) is not None:
            raise AlreadyExists(f"Game '{normalized}' already exists in division {division_id}")
        game = Game(name=normalized, owner_id=division_id, released=released)
        self._session.add(game)
        try:
            self._session.flush([game])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Game '{normalized}' already exists") from exc
        logger.info(
            "rbac.game.created",
            extra=log_context(division_id=division_id, game_id=game.id, released=released),
        )
        return game

    def list_games(self, division_id: int) -> list[Game]:
        self._require_division(division_id)
        return self._store.list_games_in_division(division_id)

    def update_game(self, game_id: int, *, name: str | None = None, released: bool | None = None) -> Game:
        game = self._require_game(game_id)
        if name is not None:
            normalized = _normalize_name(name, field="Game name")
            existing = self._store.get_game_by_name(game.owner_id, normalized)
            if existing is not None and existing.id != game.id:
                raise AlreadyExists(f"Game '{normalized}' already exists")
            game.name = normalized
        if released is not None:
            game.released = released
        self._session.flush([game])
        return game

    # ------------- users -------------------------

    def create_user(
        self,
        division_id: int,
        external_id: str,
        *,
        account_type: str | None = None,
    ) -> User:
        self._require_division(division_id)
        normalized = _normalize_name(external_id, field="External id")
        if self._store.get_user_by_external_id(normalized) is not None:
            logger.info(
                "rbac.user.create.conflict",
                extra=log_context(division_id=division_id),
            )
            raise AlreadyExists(f"User '{normalized}' already exists")
        user = User(
            external_id=normalized,
            account_type=(account_type or "").strip() or DEFAULT_ACCOUNT_TYPE,
            owner_id=division_id,
        )
        self._session.add(user)
        try:
            self._session.flush([user])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"User '{normalized}' already exists") from exc
        logger.info(
            "rbac.user.created",
            extra=log_context(division_id=division_id, user_id=user.id),
        )
        return user

    def list_users(self, division_id: int) -> list[User]:
        self._require_division(division_id)
        return self._store.list_users_in_division(division_id)

    def remove_user(self, user_id: int, *, actor_external_id: str | None = None) -> None:
        user = self._require_user(user_id)
        if actor_external_id is not None and user.external_id == actor_external_id:
            raise SelfRemoval("Users cannot remove their own account")
        division_id = user.owner_id
        self._session.delete(user)
        self._session.flush()
        logger.info(
            "rbac.user.removed",
            extra=log_context(division_id=division_id, user_id=user_id),
        )

    # ------------- groups ------------------------

    def create_group(self, division_id: int, name: str) -> Group:
        self._require_division(division_id)
        normalized = _normalize_name(name, field="Group name")
        if self._store.get_group_by_name(division_id, normalized) is not None:
            logger.info(
                "rbac.group.create.conflict",
                extra=log_context(division_id=division_id, group_name=normalized),
            )
            raise AlreadyExists(f"Group '{normalized}' already exists in division {division_id}")
        group = Group(name=normalized, owner_id=division_id)
        self._session.add(group)
        try:
            self._session.flush([group])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Group '{normalized}' already exists") from exc
        logger.info(
            "rbac.group.created",
            extra=log_context(division_id=division_id, group_id=group.id),
        )
        return group

    def list_groups(self, division_id: int) -> list[Group]:
        self._require_division(division_id)
        return self._store.list_groups_in_division(division_id)

    def remove_group(self, group_id: int) -> None:
        group = self._require_group(group_id)
        division_id = group.owner_id
        self._session.delete(group)
        self._session.flush()
        logger.info(
            "rbac.group.removed",
            extra=log_context(division_id=division_id, group_id=group_id),
        )

    def list_group_users(self, group_id: int) -> list[User]:
        self._require_group(group_id)
        return self._store.list_users_in_group(group_id)

    def list_group_roles(self, group_id: int) -> list[Role]:
        self._require_group(group_id)
        return self._store.list_roles_in_group(group_id)

    def add_user_to_group(self, group_id: int, user_id: int) -> UserGroup:
        group = self._require_group(group_id)
        user = self._require_user(user_id)
        _ensure_same_division(group.owner_id, user.owner_id)
        if self._store.get_user_group(user_id, group_id) is not None:
            raise AlreadyExists(f"User {user_id} is already a member of group {group_id}")
        link = UserGroup(user_id=user_id, group_id=group_id)
        self._session.add(link)
        try:
            self._session.flush([link])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"User {user_id} is already a member of group {group_id}") from exc
        return link

    def remove_user_from_group(self, group_id: int, user_id: int) -> None:
        self._require_group(group_id)
        link = self._store.get_user_group(user_id, group_id)
        if link is None:
            raise EntityNotFound("Group membership", f"{group_id}/{user_id}")
        self._session.delete(link)
        self._session.flush()

    def add_role_to_group(self, group_id: int, role_id: int) -> GroupRole:
        group = self._require_group(group_id)
        role = self._require_role(role_id)
        _ensure_same_division(group.owner_id, role.owner_id)
        if self._store.get_group_role(group_id, role_id) is not None:
            raise AlreadyExists(f"Role {role_id} is already assigned to group {group_id}")
        link = GroupRole(group_id=group_id, role_id=role_id)
        self._session.add(link)
        try:
            self._session.flush([link])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Role {role_id} is already assigned to group {group_id}") from exc
        return link

    def remove_role_from_group(self, group_id: int, role_id: int) -> None:
        self._require_group(group_id)
        link = self._store.get_group_role(group_id, role_id)
        if link is None:
            raise EntityNotFound("Group role", f"{group_id}/{role_id}")
        self._session.delete(link)
        self._session.flush()

    # ------------- roles -------------------------

    def create_role(self, division_id: int, name: str) -> Role:
        self._require_division(division_id)
        normalized = _normalize_name(name, field="Role name")
        if self._store.get_role_by_name(division_id, normalized) is not None:
            logger.info(
                "rbac.role.create.conflict",
                extra=log_context(division_id=division_id, role_name=normalized),
            )
            raise AlreadyExists(f"Role '{normalized}' already exists in division {division_id}")
        role = Role(name=normalized, owner_id=division_id)
        self._session.add(role)
        try:
            self._session.flush([role])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Role '{normalized}' already exists") from exc
        logger.info(
            "rbac.role.created",
            extra=log_context(division_id=division_id, role_id=role.id),
        )
        return role

    def list_roles(self, division_id: int) -> list[Role]:
        self._require_division(division_id)
        return self._store.list_roles_in_division(division_id)

    def remove_role(self, role_id: int) -> None:
        role = self._require_role(role_id)
        division_id = role.owner_id
        self._session.delete(role)
        self._session.flush()
        logger.info(
            "rbac.role.removed",
            extra=log_context(division_id=division_id, role_id=role_id),
        )

    def list_role_permissions(self, role_id: int) -> list[Permission]:
        self._require_role(role_id)
        return self._store.list_permissions_in_role(role_id)

    def list_role_games(self, role_id: int) -> list[Game]:
        self._require_role(role_id)
        return self._store.list_games_in_role(role_id)

    def add_permission_to_role(self, role_id: int, permission_id: str) -> RolePermission:
        self._require_role(role_id)
        permission = self._require_permission(permission_id)
        if self._store.get_role_permission(role_id, permission.id) is not None:
            raise AlreadyExists(f"Role {role_id} already carries '{permission.id}'")
        link = RolePermission(role_id=role_id, permission_id=permission.id)
        self._session.add(link)
        try:
            self._session.flush([link])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Role {role_id} already carries '{permission.id}'") from exc
        return link

    def remove_permission_from_role(self, role_id: int, permission_id: str) -> None:
        self._require_role(role_id)
        permission = self._require_permission(permission_id)
        link = self._store.get_role_permission(role_id, permission.id)
        if link is None:
            raise EntityNotFound("Role permission", f"{role_id}/{permission.id}")
        self._session.delete(link)
        self._session.flush()

    def add_game_to_role(self, role_id: int, game_id: int) -> RoleGame:
        role = self._require_role(role_id)
        game = self._require_game(game_id)
        _ensure_same_division(role.owner_id, game.owner_id)
        if self._store.get_role_game(role_id, game_id) is not None:
            raise AlreadyExists(f"Game {game_id} is already assigned to role {role_id}")
        link = RoleGame(role_id=role_id, game_id=game_id)
        self._session.add(link)
        try:
            self._session.flush([link])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Game {game_id} is already assigned to role {role_id}") from exc
        return link

    def remove_game_from_role(self, role_id: int, game_id: int) -> None:
        self._require_role(role_id)
        link = self._store.get_role_game(role_id, game_id)
        if link is None:
            raise EntityNotFound("Role game", f"{role_id}/{game_id}")
        self._session.delete(link)
        self._session.flush()

    # ------------- legacy namespace grants -------

    def grant_namespace(self, user_id: int, role_id: int, namespace: str) -> UserRoleResource:
        """Grant ``namespace`` through the (user, role) pair, creating the pair if needed."""

        user = self._require_user(user_id)
        role = self._require_role(role_id)
        _ensure_same_division(user.owner_id, role.owner_id)
        normalized = _normalize_namespace(namespace)

        user_role = self._store.get_user_role(user_id, role_id)
        if user_role is None:
            user_role = UserRole(user_id=user_id, role_id=role_id)
            self._session.add(user_role)
            self._session.flush([user_role])
        elif self._store.get_user_role_resource(user_role.id, normalized) is not None:
            raise AlreadyExists(f"Namespace '{normalized}' is already granted")

        grant = UserRoleResource(user_role_id=user_role.id, namespace=normalized)
        self._session.add(grant)
        try:
            self._session.flush([grant])
        except IntegrityError as exc:  # pragma: no cover - concurrent insert
            raise AlreadyExists(f"Namespace '{normalized}' is already granted") from exc
        return grant

    def revoke_namespace(self, user_id: int, role_id: int, namespace: str) -> None:
        normalized = _normalize_namespace(namespace)
        user_role = self._store.get_user_role(user_id, role_id)
        grant = (
            self._store.get_user_role_resource(user_role.id, normalized)
            if user_role is not None
            else None
        )
        if grant is None:
            raise EntityNotFound("Namespace grant", normalized)
        self._session.delete(grant)
        self._session.flush()

    def list_namespaces(self, user_id: int, role_id: int) -> list[str]:
        user_role = self._store.get_user_role(user_id, role_id)
        if user_role is None:
            return []
        return self._store.list_namespaces_for_user_role(user_role.id)


__all__ = [
    "AlreadyExists",
    "CROSS_DIVISION_MESSAGE",
    "CrossDivisionAssociation",
    "EntityNotFound",
    "RbacAdminError",
    "RbacAdminService",
    "SelfRemoval",
]
