"""
identity/models.py -- Value objects for identity entities.

Pattern: frozen dataclasses (pure data, zero logic). Services in users.py,
roles.py and permissions.py do the work and hand back new instances built
with dataclasses.replace() once a write has succeeded. Nothing mutates an
instance a caller already holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Permission:
    """A named capability. The name is the primary key; there is no rename."""

    name: str


@dataclass(frozen=True)
class Role:
    """A named group of permissions.

    permissions is resolved from the role_permissions association table on
    every read; it is never stored inline on the roles row. Order carries no
    meaning.
    """

    id: int
    name: str
    permissions: tuple[Permission, ...] = ()

    @property
    def permission_names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.permissions)


@dataclass(frozen=True)
class RolePermission:
    """One association row, keyed by (role_id, permission_name)."""

    role_id: int
    permission_name: str


@dataclass(frozen=True)
class UserAccount:
    """An account that can authenticate with email + password.

    password_hash is the bcrypt output, never the plaintext. It is kept out
    of repr() so accounts can be logged safely.
    """

    id: int
    name: str
    email: str
    password_hash: str = field(repr=False)
