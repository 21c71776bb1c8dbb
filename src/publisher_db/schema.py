"""Schema access and creation for the authorization graph tables."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

import publisher_db.models  # noqa: F401
from publisher_db.base import Base

logger = logging.getLogger(__name__)

metadata = Base.metadata

REQUIRED_TABLES = [
    "divisions",
    "games",
    "rbac_users",
    "rbac_groups",
    "rbac_roles",
    "rbac_permissions",
    "rbac_usergroups",
    "rbac_grouproles",
    "rbac_rolepermissions",
    "rbac_rolegames",
    "rbac_userroles",
    "rbac_userroleresources",
]


def create_schema(engine: Engine) -> None:
    """Create every table that does not exist yet."""

    logger.info("db.schema.create.start", extra={"tables": len(metadata.tables)})
    metadata.create_all(engine)
    logger.info("db.schema.create.complete")


def drop_schema(engine: Engine) -> None:
    metadata.drop_all(engine)


__all__ = ["REQUIRED_TABLES", "create_schema", "drop_schema", "metadata"]
