"""Query layer over the authorization graph.

Every query shape the resolvers need is one statement. Listings use explicit
joins instead of the ``viewonly`` relationships so a session that has just
mutated association rows never reads stale collections.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, selectinload

from publisher_api.core.rbac.types import ResourceKind
from publisher_db.models import (
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


_OWNED_MODELS: dict[ResourceKind, type[Group] | type[Role] | type[User] | type[Game]] = {
    ResourceKind.GROUP: Group,
    ResourceKind.ROLE: Role,
    ResourceKind.USER: User,
    ResourceKind.GAME: Game,
}


class AuthorizationGraphStore:
    """Typed accessors for divisions, users, groups, roles and their links."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # ------------- entity lookups ----------------

    def get_user_by_external_id(self, external_id: str) -> User | None:
        stmt = select(User).where(User.external_id == external_id).limit(1)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_user(self, user_id: int) -> User | None:
        return self._session.get(User, user_id)

    def get_group(self, group_id: int) -> Group | None:
        return self._session.get(Group, group_id)

    def get_role(self, role_id: int) -> Role | None:
        return self._session.get(Role, role_id)

    def get_game(self, game_id: int) -> Game | None:
        return self._session.get(Game, game_id)

    def get_division(self, division_id: int) -> Division | None:
        return self._session.get(Division, division_id)

    def get_permission(self, permission_id: str) -> Permission | None:
        return self._session.get(Permission, permission_id)

    def get_division_by_name(self, name: str) -> Division | None:
        stmt = select(Division).where(Division.name == name).limit(1)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_group_by_name(self, division_id: int, name: str) -> Group | None:
        stmt = (
            select(Group)
            .where(Group.owner_id == division_id, Group.name == name)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_role_by_name(self, division_id: int, name: str) -> Role | None:
        stmt = (
            select(Role)
            .where(Role.owner_id == division_id, Role.name == name)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_game_by_name(self, division_id: int, name: str) -> Game | None:
        stmt = (
            select(Game)
            .where(Game.owner_id == division_id, Game.name == name)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def resource_owner_id(self, kind: ResourceKind, resource_id: int) -> int | None:
        """Return the id of the division owning ``resource_id``, if it exists."""

        if kind is ResourceKind.DIVISION:
            stmt = select(Division.id).where(Division.id == resource_id)
        else:
            model = _OWNED_MODELS[kind]
            stmt = select(model.owner_id).where(model.id == resource_id)
        return self._session.execute(stmt).scalar_one_or_none()

    # ------------- association rows --------------

    def get_user_group(self, user_id: int, group_id: int) -> UserGroup | None:
        return self._session.get(UserGroup, (user_id, group_id))

    def get_group_role(self, group_id: int, role_id: int) -> GroupRole | None:
        return self._session.get(GroupRole, (group_id, role_id))

    def get_role_permission(self, role_id: int, permission_id: str) -> RolePermission | None:
        return self._session.get(RolePermission, (role_id, permission_id))

    def get_role_game(self, role_id: int, game_id: int) -> RoleGame | None:
        return self._session.get(RoleGame, (role_id, game_id))

    def get_user_role(self, user_id: int, role_id: int) -> UserRole | None:
        stmt = (
            select(UserRole)
            .where(UserRole.user_id == user_id, UserRole.role_id == role_id)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_user_role_resource(
        self,
        user_role_id: int,
        namespace: str,
    ) -> UserRoleResource | None:
        stmt = (
            select(UserRoleResource)
            .where(
                UserRoleResource.user_role_id == user_role_id,
                UserRoleResource.namespace == namespace,
            )
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    # ------------- resolver queries --------------

    def list_groups_for_user(
        self,
        user_id: int,
        *,
        division_id: int | None = None,
    ) -> list[Group]:
        stmt = (
            select(Group)
            .join(UserGroup, UserGroup.group_id == Group.id)
            .where(UserGroup.user_id == user_id)
            .order_by(Group.id)
        )
        if division_id is not None:
            stmt = stmt.where(Group.owner_id == division_id)
        return list(self._session.execute(stmt).scalars().all())

    def list_roles_for_groups(self, group_ids: Iterable[int]) -> list[Role]:
        """Return roles assigned to any of ``group_ids`` with permissions and games loaded."""

        ids = tuple(dict.fromkeys(group_ids))
        if not ids:
            return []
        stmt = (
            select(Role)
            .join(GroupRole, GroupRole.role_id == Role.id)
            .where(GroupRole.group_id.in_(ids))
            .options(selectinload(Role.permissions), selectinload(Role.games))
            .distinct()
            .order_by(Role.id)
            .execution_options(populate_existing=True)
        )
        return list(self._session.execute(stmt).scalars().all())

    def user_access_summary(self, user_id: int) -> User | None:
        """Load a user with groups, their roles, and each role's permissions and games."""

        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(
                selectinload(User.owner),
                selectinload(User.groups).selectinload(Group.owner),
                selectinload(User.groups).selectinload(Group.roles).selectinload(Role.permissions),
                selectinload(User.groups).selectinload(Group.roles).selectinload(Role.games),
            )
            .execution_options(populate_existing=True)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def has_division_permission(self, user_id: int, permission: str, division_id: int) -> bool:
        """Return whether a group owned by ``division_id`` gives the user ``permission``."""

        stmt = (
            select(GroupRole.role_id)
            .join(UserGroup, UserGroup.group_id == GroupRole.group_id)
            .join(Group, Group.id == GroupRole.group_id)
            .join(RolePermission, RolePermission.role_id == GroupRole.role_id)
            .where(
                UserGroup.user_id == user_id,
                Group.owner_id == division_id,
                RolePermission.permission_id == permission,
            )
            .limit(1)
        )
        return self._session.execute(stmt).first() is not None

    def find_role_granting_all(
        self,
        user_id: int,
        game_id: int,
        permissions: Sequence[str],
    ) -> int | None:
        """Return the id of one role that carries every permission on ``game_id``.

        Memberships are joined per group, so the same role can appear through
        several groups; permissions are counted distinctly per role.
        """

        required = tuple(dict.fromkeys(permissions))
        if not required:
            return None
        stmt = (
            select(GroupRole.role_id)
            .join(UserGroup, UserGroup.group_id == GroupRole.group_id)
            .join(RoleGame, RoleGame.role_id == GroupRole.role_id)
            .join(RolePermission, RolePermission.role_id == GroupRole.role_id)
            .where(
                UserGroup.user_id == user_id,
                RoleGame.game_id == game_id,
                RolePermission.permission_id.in_(required),
            )
            .group_by(GroupRole.role_id)
            .having(func.count(distinct(RolePermission.permission_id)) == len(required))
            .order_by(GroupRole.role_id)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def list_namespace_grants(self, user_id: int, permission: str) -> list[str]:
        """Namespaces granted through the user's direct roles that carry ``permission``."""

        stmt = (
            select(UserRoleResource.namespace)
            .join(UserRole, UserRole.id == UserRoleResource.user_role_id)
            .join(RolePermission, RolePermission.role_id == UserRole.role_id)
            .where(
                UserRole.user_id == user_id,
                RolePermission.permission_id == permission,
            )
            .distinct()
            .order_by(UserRoleResource.namespace)
        )
        return list(self._session.execute(stmt).scalars().all())

    # ------------- listings ----------------------

    def list_divisions(self) -> list[Division]:
        stmt = select(Division).order_by(Division.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_permissions(self) -> list[Permission]:
        stmt = select(Permission).order_by(Permission.scope, Permission.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_users_in_division(self, division_id: int) -> list[User]:
        stmt = select(User).where(User.owner_id == division_id).order_by(User.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_groups_in_division(self, division_id: int) -> list[Group]:
        stmt = select(Group).where(Group.owner_id == division_id).order_by(Group.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_roles_in_division(self, division_id: int) -> list[Role]:
        stmt = select(Role).where(Role.owner_id == division_id).order_by(Role.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_games_in_division(self, division_id: int) -> list[Game]:
        stmt = select(Game).where(Game.owner_id == division_id).order_by(Game.id)
        return list(self._session.execute(stmt).scalars().all())

    def list_users_in_group(self, group_id: int) -> list[User]:
        stmt = (
            select(User)
            .join(UserGroup, UserGroup.user_id == User.id)
            .where(UserGroup.group_id == group_id)
            .order_by(User.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_roles_in_group(self, group_id: int) -> list[Role]:
        stmt = (
            select(Role)
            .join(GroupRole, GroupRole.role_id == Role.id)
            .where(GroupRole.group_id == group_id)
            .order_by(Role.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_permissions_in_role(self, role_id: int) -> list[Permission]:
        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_games_in_role(self, role_id: int) -> list[Game]:
        stmt = (
            select(Game)
            .join(RoleGame, RoleGame.game_id == Game.id)
            .where(RoleGame.role_id == role_id)
            .order_by(Game.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_namespaces_for_user_role(self, user_role_id: int) -> list[str]:
        stmt = (
            select(UserRoleResource.namespace)
            .where(UserRoleResource.user_role_id == user_role_id)
            .order_by(UserRoleResource.namespace)
        )
        return list(self._session.execute(stmt).scalars().all())


__all__ = ["AuthorizationGraphStore", "ResourceKind"]
