"""
identity/roles.py -- Role lifecycle and role <-> permission associations.

A role's permissions live in the role_permissions association table and are
resolved on every read ("hydration"). Hydration is batched: one query for the
association rows, one IN query for the permissions, whatever the number of
permissions.

Deleting a role cascades to its association rows (ON DELETE CASCADE in
identity/store.py); callers do not have to remove permissions first.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from core.errors import IdentityError, RoleErrorKind
from core.validation import is_blank
from identity.models import Permission, Role
from identity.permissions import PermissionService
from identity.store import SqlGateway, StoreError, UniqueViolation

logger = logging.getLogger("rolegate.identity.roles")


class RoleService:
    def __init__(self, gateway: SqlGateway, permissions: PermissionService) -> None:
        self.gateway = gateway
        self.permissions = permissions

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, name: str) -> Role:
        """Create a role with no permissions.

        The name is stripped of surrounding whitespace. The lookup by name is
        a fast path; a concurrent create that wins the race is still caught
        by the UNIQUE constraint and reported as ALREADY_EXISTS.
        """
        if is_blank(name):
            raise IdentityError(RoleErrorKind.NAME_REQUIRED, "The role name is required")
        name = name.strip()

        if self._find_row({"name": name}) is not None:
            raise IdentityError(RoleErrorKind.ALREADY_EXISTS, f"The role with the name {name} already exists")

        try:
            row = self.gateway.create("role", {"name": name})
        except UniqueViolation as exc:
            raise IdentityError(
                RoleErrorKind.ALREADY_EXISTS, f"The role with the name {name} already exists", exc
            ) from exc
        except StoreError as exc:
            raise IdentityError(RoleErrorKind.DATABASE_ERROR, f"Could not create role {name!r}", exc) from exc

        logger.info("Role %r created with id %s", name, row["id"])
        return Role(id=row["id"], name=row["name"])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, role_id: int) -> Role:
        row = self._find_row({"id": role_id})
        if row is None:
            raise IdentityError(RoleErrorKind.NOT_FOUND, f"The role with the id {role_id} was not found")
        return self._hydrate(row)

    def get_by_name(self, name: str) -> Role:
        """Look up by name, stripped the same way create() strips it."""
        name = name.strip()
        row = self._find_row({"name": name})
        if row is None:
            raise IdentityError(RoleErrorKind.NOT_FOUND, f"The role with the name {name} was not found")
        return self._hydrate(row)

    def get_permissions(self, role_id: int) -> list[Permission]:
        """Return the permissions currently associated with role_id.

        Order is not significant. A role id with no association rows (or no
        role at all) yields an empty list.
        """
        try:
            links = self.gateway.find_many("role_permission", {"role_id": role_id})
        except StoreError as exc:
            raise IdentityError(
                RoleErrorKind.DATABASE_ERROR, f"Could not load permissions of role {role_id}", exc
            ) from exc
        return self.permissions.get_many(link["permission_name"] for link in links)

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    def add_permission(self, role: Role, permission: Permission) -> Role:
        """Associate permission with role and return the updated role.

        Every store failure is DATABASE_ERROR, including a pair that is
        already associated and a permission or role that does not exist.
        """
        try:
            self.gateway.create("role_permission", {"role_id": role.id, "permission_name": permission.name})
        except StoreError as exc:
            raise IdentityError(
                RoleErrorKind.DATABASE_ERROR,
                f"Could not add permission {permission.name!r} to role {role.name!r}",
                exc,
            ) from exc
        logger.info("Permission %r added to role %r", permission.name, role.name)
        return replace(role, permissions=role.permissions + (permission,))

    def remove_permission(self, role: Role, permission: Permission) -> Role:
        """Drop the association and return the updated role.

        Removing a pair that is not associated is DATABASE_ERROR.
        """
        try:
            self.gateway.delete("role_permission", {"role_id": role.id, "permission_name": permission.name})
        except StoreError as exc:
            raise IdentityError(
                RoleErrorKind.DATABASE_ERROR,
                f"Could not remove permission {permission.name!r} from role {role.name!r}",
                exc,
            ) from exc
        logger.info("Permission %r removed from role %r", permission.name, role.name)
        remaining = tuple(p for p in role.permissions if p.name != permission.name)
        return replace(role, permissions=remaining)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, role: Role) -> None:
        """Delete the role row; its association rows go with it."""
        try:
            self.gateway.delete("role", {"id": role.id})
        except StoreError as exc:
            raise IdentityError(RoleErrorKind.DATABASE_ERROR, f"Could not delete role {role.name!r}", exc) from exc
        logger.info("Role %r (id %s) deleted", role.name, role.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_row(self, criteria: dict[str, Any]) -> dict | None:
        try:
            return self.gateway.find_unique("role", criteria)
        except StoreError as exc:
            raise IdentityError(RoleErrorKind.DATABASE_ERROR, f"Could not look up role {criteria!r}", exc) from exc

    def _hydrate(self, row: dict) -> Role:
        return Role(id=row["id"], name=row["name"], permissions=tuple(self.get_permissions(row["id"])))
