from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status

from publisher_api.core.http import (
    PrincipalDep,
    ResolversDep,
    AuthorizationScope,
    authorize,
    require_division_permission,
    store_guard,
)
from publisher_api.core.rbac.types import DivisionAccess, ResourceKind
from publisher_api.db import ReadSessionDep, WriteSessionDep
from publisher_db.models import Game, Group, Permission, Role, User

from .schemas import (
    GameRef,
    GroupDetail,
    GroupOut,
    NamespaceCreate,
    NamespaceGrant,
    NamespaceGrantList,
    PermissionOut,
    RoleDetail,
    RoleOut,
    UserAbout,
    UserCreate,
    UserOut,
)
from .service import RbacAdminService

router = APIRouter(prefix="/rbac", tags=["rbac"])

DivisionPath = Annotated[int, Path(description="Division identifier", alias="divisionId")]
GroupPath = Annotated[int, Path(description="Group identifier", alias="groupId")]
RolePath = Annotated[int, Path(description="Role identifier", alias="roleId")]
UserPath = Annotated[int, Path(description="User identifier", alias="userId")]
GamePath = Annotated[int, Path(description="Game identifier", alias="gameId")]
PermissionPath = Annotated[str, Path(description="Permission identifier", alias="permissionId")]

_division_admin = require_division_permission("rbac-admin")
_group_admin = require_division_permission(
    "rbac-admin", resource=ResourceKind.GROUP, param="groupId"
)
_role_admin = require_division_permission(
    "rbac-admin", resource=ResourceKind.ROLE, param="roleId"
)
_user_admin = require_division_permission(
    "rbac-admin", resource=ResourceKind.USER, param="userId"
)
_account_creator = require_division_permission("create-account")
_account_remover = require_division_permission(
    "remove-account", resource=ResourceKind.USER, param="userId"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _serialize_permission(permission: Permission) -> PermissionOut:
    return PermissionOut(
        id=permission.id,
        scope=permission.scope,
        label=permission.label,
        description=permission.description,
    )


def _serialize_game(game: Game) -> GameRef:
    return GameRef(id=game.id, name=game.name, released=game.released)


def _serialize_role(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        owner_id=role.owner_id,
        created_at=role.created_at,
    )


def _serialize_role_detail(role: Role) -> RoleDetail:
    return RoleDetail(
        id=role.id,
        name=role.name,
        owner_id=role.owner_id,
        created_at=role.created_at,
        permissions=[permission.id for permission in role.permissions],
        games=[_serialize_game(game) for game in role.games],
    )


def _serialize_group(group: Group) -> GroupOut:
    return GroupOut(
        id=group.id,
        name=group.name,
        owner_id=group.owner_id,
        created_at=group.created_at,
    )


def _serialize_user(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        name=user.external_id,
        account_type=user.account_type,
        owner_id=user.owner_id,
        created_at=user.created_at,
    )


def _serialize_about(user: User) -> UserAbout:
    groups = [
        GroupDetail(
            id=group.id,
            name=group.name,
            owner_id=group.owner_id,
            created_at=group.created_at,
            roles=[_serialize_role_detail(role) for role in group.roles],
        )
        for group in user.groups
    ]
    return UserAbout(
        id=user.id,
        name=user.external_id,
        account_type=user.account_type,
        owner_id=user.owner_id,
        created_at=user.created_at,
        division=user.owner.name,
        groups=groups,
    )


# ---------------------------------------------------------------------------
# Caller-centric routes
# ---------------------------------------------------------------------------


@router.get(
    "/about",
    response_model=UserAbout,
    response_model_exclude_none=True,
    summary="Describe a user with groups, roles, permissions and games",
)
def read_about(
    request: Request,
    principal: PrincipalDep,
    resolvers: ResolversDep,
    session: ReadSessionDep,
    user_name: Annotated[str | None, Query(alias="userName")] = None,
) -> UserAbout:
    """Return the caller's access summary, or another user's for division admins."""

    service = RbacAdminService(session=session)
    target = (user_name or "").strip() or principal.external_id
    if target != principal.external_id:
        with store_guard(principal, scope_type="user", scope_id=target):
            user = service.get_user_by_external_id(target)
        access = DivisionAccess(permission="rbac-admin", division_id=user.owner_id)
        authorize(request, resolvers.graph, principal, access)
    return _serialize_about(service.access_summary(target))


@router.get(
    "/users",
    response_model=list[UserOut],
    summary="List users in the caller's division",
)
def list_own_division_users(principal: PrincipalDep, session: ReadSessionDep) -> list[UserOut]:
    service = RbacAdminService(session=session)
    caller = service.get_user_by_external_id(principal.external_id)
    return [_serialize_user(user) for user in service.list_users(caller.owner_id)]


@router.get(
    "/permissions",
    response_model=list[PermissionOut],
    summary="List the permission catalog",
)
def list_permissions(_principal: PrincipalDep, session: ReadSessionDep) -> list[PermissionOut]:
    service = RbacAdminService(session=session)
    return [_serialize_permission(permission) for permission in service.list_permissions()]


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


@router.post(
    "/divisions/{divisionId}/groups",
    dependencies=[Depends(_division_admin)],
    response_model=GroupOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group",
)
def create_group(
    division_id: DivisionPath,
    group_name: Annotated[str, Query(alias="groupName", min_length=1, max_length=64)],
    session: WriteSessionDep,
) -> GroupOut:
    service = RbacAdminService(session=session)
    return _serialize_group(service.create_group(division_id, group_name))


@router.get(
    "/divisions/{divisionId}/groups",
    dependencies=[Depends(_division_admin)],
    response_model=list[GroupOut],
    summary="List groups in a division",
)
def list_groups(division_id: DivisionPath, session: ReadSessionDep) -> list[GroupOut]:
    service = RbacAdminService(session=session)
    return [_serialize_group(group) for group in service.list_groups(division_id)]


@router.delete(
    "/groups/{groupId}",
    dependencies=[Depends(_group_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a group",
)
def delete_group(group_id: GroupPath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).remove_group(group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/groups/{groupId}/users",
    dependencies=[Depends(_group_admin)],
    response_model=list[UserOut],
    summary="List users in a group",
)
def list_group_users(group_id: GroupPath, session: ReadSessionDep) -> list[UserOut]:
    service = RbacAdminService(session=session)
    return [_serialize_user(user) for user in service.list_group_users(group_id)]


@router.post(
    "/groups/{groupId}/users/{userId}",
    dependencies=[Depends(_group_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a user to a group",
)
def add_group_user(group_id: GroupPath, user_id: UserPath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).add_user_to_group(group_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/groups/{groupId}/users/{userId}",
    dependencies=[Depends(_group_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a user from a group",
)
def remove_group_user(
    group_id: GroupPath,
    user_id: UserPath,
    session: WriteSessionDep,
) -> Response:
    RbacAdminService(session=session).remove_user_from_group(group_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/groups/{groupId}/roles",
    dependencies=[Depends(_group_admin)],
    response_model=list[RoleOut],
    summary="List roles assigned to a group",
)
def list_group_roles(group_id: GroupPath, session: ReadSessionDep) -> list[RoleOut]:
    service = RbacAdminService(session=session)
    return [_serialize_role(role) for role in service.list_group_roles(group_id)]


@router.post(
    "/groups/{groupId}/roles/{roleId}",
    dependencies=[Depends(_group_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Assign a role to a group",
)
def add_group_role(group_id: GroupPath, role_id: RolePath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).add_role_to_group(group_id, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/groups/{groupId}/roles/{roleId}",
    dependencies=[Depends(_group_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unassign a role from a group",
)
def remove_group_role(
    group_id: GroupPath,
    role_id: RolePath,
    session: WriteSessionDep,
) -> Response:
    RbacAdminService(session=session).remove_role_from_group(group_id, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@router.post(
    "/divisions/{divisionId}/roles",
    dependencies=[Depends(_division_admin)],
    response_model=RoleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
def create_role(
    division_id: DivisionPath,
    role_name: Annotated[str, Query(alias="roleName", min_length=1, max_length=64)],
    session: WriteSessionDep,
) -> RoleOut:
    service = RbacAdminService(session=session)
    return _serialize_role(service.create_role(division_id, role_name))


@router.get(
    "/divisions/{divisionId}/roles",
    dependencies=[Depends(_division_admin)],
    response_model=list[RoleOut],
    summary="List roles in a division",
)
def list_roles(division_id: DivisionPath, session: ReadSessionDep) -> list[RoleOut]:
    service = RbacAdminService(session=session)
    return [_serialize_role(role) for role in service.list_roles(division_id)]


@router.delete(
    "/roles/{roleId}",
    dependencies=[Depends(_role_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a role",
)
def delete_role(role_id: RolePath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).remove_role(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/roles/{roleId}/permissions",
    dependencies=[Depends(_role_admin)],
    response_model=list[PermissionOut],
    summary="List permissions carried by a role",
)
def list_role_permissions(role_id: RolePath, session: ReadSessionDep) -> list[PermissionOut]:
    service = RbacAdminService(session=session)
    return [_serialize_permission(item) for item in service.list_role_permissions(role_id)]


@router.post(
    "/roles/{roleId}/permissions/{permissionId}",
    dependencies=[Depends(_role_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a permission to a role",
)
def add_role_permission(
    role_id: RolePath,
    permission_id: PermissionPath,
    session: WriteSessionDep,
) -> Response:
    RbacAdminService(session=session).add_permission_to_role(role_id, permission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/roles/{roleId}/permissions/{permissionId}",
    dependencies=[Depends(_role_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a permission from a role",
)
def remove_role_permission(
    role_id: RolePath,
    permission_id: PermissionPath,
    session: WriteSessionDep,
) -> Response:
    RbacAdminService(session=session).remove_permission_from_role(role_id, permission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/roles/{roleId}/games",
    dependencies=[Depends(_role_admin)],
    response_model=list[GameRef],
    summary="List games a role applies to",
)
def list_role_games(role_id: RolePath, session: ReadSessionDep) -> list[GameRef]:
    service = RbacAdminService(session=session)
    return [_serialize_game(game) for game in service.list_role_games(role_id)]


@router.post(
    "/roles/{roleId}/games/{gameId}",
    dependencies=[Depends(_role_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Add a game to a role",
)
def add_role_game(role_id: RolePath, game_id: GamePath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).add_game_to_role(role_id, game_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/roles/{roleId}/games/{gameId}",
    dependencies=[Depends(_role_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a game from a role",
)
def remove_role_game(role_id: RolePath, game_id: GamePath, session: WriteSessionDep) -> Response:
    RbacAdminService(session=session).remove_game_from_role(role_id, game_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.post(
    "/divisions/{divisionId}/users",
    dependencies=[Depends(_account_creator)],
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
)
def create_user(
    division_id: DivisionPath,
    payload: UserCreate,
    session: WriteSessionDep,
) -> UserOut:
    service = RbacAdminService(session=session)
    user = service.create_user(division_id, payload.name, account_type=payload.account_type)
    return _serialize_user(user)


@router.get(
    "/divisions/{divisionId}/users",
    dependencies=[Depends(_division_admin)],
    response_model=list[UserOut],
    summary="List users in a division",
)
def list_users(division_id: DivisionPath, session: ReadSessionDep) -> list[UserOut]:
    service = RbacAdminService(session=session)
    return [_serialize_user(user) for user in service.list_users(division_id)]


@router.delete(
    "/users/{userId}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a user account",
)
def delete_user(
    user_id: UserPath,
    scope: Annotated[AuthorizationScope, Depends(_account_remover)],
    session: WriteSessionDep,
) -> Response:
    """Remove an account; the evaluated principal may not remove itself."""

    service = RbacAdminService(session=session)
    service.remove_user(user_id, actor_external_id=scope.principal.external_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/users/{userId}",
    dependencies=[Depends(_user_admin)],
    response_model=UserOut,
    summary="Retrieve a user account",
)
def read_user(user_id: UserPath, session: ReadSessionDep) -> UserOut:
    return _serialize_user(RbacAdminService(session=session).get_user(user_id))


@router.get(
    "/users/{userId}/roles",
    dependencies=[Depends(_user_admin)],
    response_model=list[RoleDetail],
    summary="List the roles a user holds through its division's groups",
)
def list_user_roles(user_id: UserPath, session: ReadSessionDep) -> list[RoleDetail]:
    roles = RbacAdminService(session=session).effective_roles(user_id)
    return [_serialize_role_detail(role) for role in roles]


# ---------------------------------------------------------------------------
# Legacy namespace grants
# ---------------------------------------------------------------------------


@router.get(
    "/users/{userId}/roles/{roleId}/namespaces",
    dependencies=[Depends(_user_admin)],
    response_model=NamespaceGrantList,
    summary="List namespaces granted through a user/role pair",
)
def list_namespace_grants(
    user_id: UserPath,
    role_id: RolePath,
    session: ReadSessionDep,
) -> NamespaceGrantList:
    service = RbacAdminService(session=session)
    return NamespaceGrantList(
        user_id=user_id,
        role_id=role_id,
        namespaces=service.list_namespaces(user_id, role_id),
    )


@router.post(
    "/users/{userId}/roles/{roleId}/namespaces",
    dependencies=[Depends(_user_admin)],
    response_model=NamespaceGrant,
    status_code=status.HTTP_201_CREATED,
    summary="Grant a namespace through a user/role pair",
)
def create_namespace_grant(
    user_id: UserPath,
    role_id: RolePath,
    payload: NamespaceCreate,
    session: WriteSessionDep,
) -> NamespaceGrant:
    grant = RbacAdminService(session=session).grant_namespace(user_id, role_id, payload.namespace)
    return NamespaceGrant(user_id=user_id, role_id=role_id, namespace=grant.namespace)


@router.delete(
    "/users/{userId}/roles/{roleId}/namespaces",
    dependencies=[Depends(_user_admin)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke a namespace from a user/role pair",
)
def delete_namespace_grant(
    user_id: UserPath,
    role_id: RolePath,
    namespace: Annotated[str, Query(min_length=1, max_length=256)],
    session: WriteSessionDep,
) -> Response:
    RbacAdminService(session=session).revoke_namespace(user_id, role_id, namespace)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
