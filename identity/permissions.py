"""
identity/permissions.py -- Permission lifecycle.

A permission is a bare name. Uniqueness is left entirely to the store's
primary key: save() does not pre-check, and a duplicate surfaces as
DATABASE_ERROR like any other store failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from core.errors import IdentityError, PermissionErrorKind
from identity.models import Permission
from identity.store import SqlGateway, StoreError

logger = logging.getLogger("rolegate.identity.permissions")


class PermissionService:
    def __init__(self, gateway: SqlGateway) -> None:
        self.gateway = gateway

    def save(self, name: str) -> Permission:
        try:
            row = self.gateway.create("permission", {"name": name})
        except StoreError as exc:
            raise IdentityError(
                PermissionErrorKind.DATABASE_ERROR, f"Could not save permission {name!r}", exc
            ) from exc
        logger.info("Permission %r saved", name)
        return Permission(name=row["name"])

    def get_by_name(self, name: str) -> Permission:
        try:
            row = self.gateway.find_unique("permission", {"name": name})
        except StoreError as exc:
            raise IdentityError(PermissionErrorKind.DATABASE_ERROR, f"Could not load permission {name!r}", exc) from exc
        if row is None:
            raise IdentityError(PermissionErrorKind.NOT_FOUND, f"Permission with name {name} not found")
        return Permission(name=row["name"])

    def get_many(self, names: Iterable[str]) -> list[Permission]:
        """Resolve several names in one query. Unknown names are skipped."""
        wanted = sorted(set(names))
        if not wanted:
            return []
        try:
            rows = self.gateway.find_many("permission", {"name": wanted})
        except StoreError as exc:
            raise IdentityError(PermissionErrorKind.DATABASE_ERROR, "Could not load permissions", exc) from exc
        return [Permission(name=r["name"]) for r in rows]

    def delete(self, permission: Permission) -> None:
        """Delete the permission and, by cascade, every role association to it.

        A permission that does not exist is a DATABASE_ERROR; there is no
        separate not-found signal on delete.
        """
        try:
            self.gateway.delete("permission", {"name": permission.name})
        except StoreError as exc:
            raise IdentityError(
                PermissionErrorKind.DATABASE_ERROR, f"Could not delete permission {permission.name!r}", exc
            ) from exc
        logger.info("Permission %r deleted", permission.name)
