"""
identity/store.py -- SQLAlchemy Core persistence gateway for identity entities.

Pattern: Table Data Gateway. SqlGateway exposes five generic operations
(find_unique, find_many, create, update, delete) keyed by an entity name and
an equality filter. Services in users.py, roles.py and permissions.py never
touch SQL directly, and tests can swap the gateway for a double.

Security:
  All queries use bound parameters. No f-strings in SQL. Column names come
  from the Table objects below, never from caller input: an unknown column
  raises KeyError before any SQL is issued.

Errors:
  Every SQLAlchemyError is re-raised as a StoreError subclass with the
  original exception kept on `.cause`:
    UniqueViolation     -- unique / primary key constraint rejected the write
    ConstraintViolation -- any other integrity failure (foreign key, NOT NULL)
    RowNotFound         -- update() or delete() matched no row
  The store's constraints are the authority on uniqueness. Service-level
  pre-checks are a fast path for friendly errors and can race.

Referential integrity:
  role_permissions references roles.id and permissions.name with
  ON DELETE CASCADE, so deleting a role or a permission removes its
  association rows in the same statement. SQLite needs foreign_keys=ON per
  connection for this; _set_sqlite_pragmas() handles it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    and_,
    create_engine,
    event,
    true,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger("rolegate.identity.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(100), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),  # bcrypt output, never plaintext
)

_roles = Table(
    "roles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)

_permissions = Table(
    "permissions",
    metadata,
    Column("name", String(255), primary_key=True),  # natural key, no surrogate id
)

_role_permissions = Table(
    "role_permissions",
    metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_name", String(255), ForeignKey("permissions.name", ondelete="CASCADE"), primary_key=True),
)

ENTITIES: dict[str, Table] = {
    "user": _users,
    "role": _roles,
    "permission": _permissions,
    "role_permission": _role_permissions,
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """A failure below the service layer. cause is the SQLAlchemy exception, if any."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class UniqueViolation(StoreError):
    pass


class ConstraintViolation(StoreError):
    pass


class RowNotFound(StoreError):
    pass


# ---------------------------------------------------------------------------
# Connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on every new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited by new
    connections from the pool. Without foreign_keys=ON the association
    table's FOREIGN KEY and ON DELETE CASCADE clauses are ignored.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_unique_violation(exc: IntegrityError) -> bool:
    # PostgreSQL drivers expose the SQLSTATE; 23505 is unique_violation.
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if code is not None:
        return code == "23505"
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


def _where(table: Table, criteria: Optional[Mapping[str, Any]]):
    """Build an AND of equality clauses. Collection values become IN (...)."""
    clauses = []
    for column_name, value in (criteria or {}).items():
        column = table.c[column_name]
        if isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(column.in_(list(value)))
        else:
            clauses.append(column == value)
    return and_(true(), *clauses)


def _require_key(entity: str, key: Mapping[str, Any]) -> None:
    # An empty key would build an unconditional WHERE and touch every row.
    if not key:
        raise ValueError(f"An empty key is not allowed when writing {entity!r}")


@contextmanager
def _translate_errors(action: str, entity: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        logger.debug("%s %s rejected by a constraint", action, entity, exc_info=True)
        if _is_unique_violation(exc):
            raise UniqueViolation(f"{action} {entity}: unique constraint violated", exc) from exc
        raise ConstraintViolation(f"{action} {entity}: integrity constraint violated", exc) from exc
    except SQLAlchemyError as exc:
        logger.debug("%s %s failed", action, entity, exc_info=True)
        raise StoreError(f"{action} {entity} failed: {exc.__class__.__name__}", exc) from exc


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class SqlGateway:
    """Generic create/read/update/delete access to the identity tables.

    Usage:
        gateway = SqlGateway("sqlite:///rolegate.db")
        row = gateway.create("role", {"name": "editor"})      # {"id": 1, "name": "editor"}
        gateway.find_unique("role", {"name": "editor"})
        gateway.find_many("permission", {"name": ["read", "write"]})
        gateway.update("user", {"id": 3}, {"name": "Alice"})
        gateway.delete("role", {"id": 1})
        gateway.close()

    Rows are returned as plain dicts keyed by column name.
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        with _translate_errors("create schema for", "identity"):
            metadata.create_all(self.engine)

    @staticmethod
    def _table(entity: str) -> Table:
        try:
            return ENTITIES[entity]
        except KeyError:
            raise ValueError(f"Unknown entity {entity!r}") from None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_unique(self, entity: str, criteria: Mapping[str, Any]) -> Optional[dict]:
        """Return the single row matching criteria, or None if there is none.

        criteria should name a unique key (id, email, name); if it matches
        several rows the first by primary key is returned.
        """
        table = self._table(entity)
        with _translate_errors("find", entity):
            with self.engine.connect() as conn:
                row = conn.execute(
                    table.select().where(_where(table, criteria)).order_by(*table.primary_key.columns)
                ).fetchone()
        return dict(row._mapping) if row is not None else None

    def find_many(self, entity: str, criteria: Optional[Mapping[str, Any]] = None) -> list[dict]:
        """Return every row matching criteria (all rows when criteria is empty)."""
        table = self._table(entity)
        with _translate_errors("list", entity):
            with self.engine.connect() as conn:
                rows = conn.execute(
                    table.select().where(_where(table, criteria)).order_by(*table.primary_key.columns)
                ).fetchall()
        return [dict(r._mapping) for r in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, entity: str, data: Mapping[str, Any]) -> dict:
        """Insert one row and return it, including the store-assigned primary key.

        Raises UniqueViolation if a unique or primary key constraint rejects
        the row; the caller decides what that means for its entity.
        """
        table = self._table(entity)
        with _translate_errors("create", entity):
            with self.engine.connect() as conn:
                result = conn.execute(table.insert().values(**data))
                conn.commit()
        row = dict(data)
        for column, value in zip(table.primary_key.columns, result.inserted_primary_key):
            row[column.name] = value
        return row

    def update(self, entity: str, key: Mapping[str, Any], data: Mapping[str, Any]) -> None:
        """Apply data to the row identified by key in a single statement.

        Raises RowNotFound if key matched nothing.
        """
        table = self._table(entity)
        _require_key(entity, key)
        with _translate_errors("update", entity):
            with self.engine.connect() as conn:
                result = conn.execute(table.update().where(_where(table, key)).values(**data))
                conn.commit()
        if result.rowcount == 0:
            raise RowNotFound(f"update {entity}: no row matches {dict(key)!r}")

    def delete(self, entity: str, key: Mapping[str, Any]) -> None:
        """Delete the row identified by key. Raises RowNotFound if there was none."""
        table = self._table(entity)
        _require_key(entity, key)
        with _translate_errors("delete", entity):
            with self.engine.connect() as conn:
                result = conn.execute(table.delete().where(_where(table, key)))
                conn.commit()
        if result.rowcount == 0:
            raise RowNotFound(f"delete {entity}: no row matches {dict(key)!r}")

    def close(self) -> None:
        self.engine.dispose()
