"""
tests/conftest.py -- Shared fixtures for the rolegate test suite.

This module provides:
  - gateway: a fresh in-memory SqlGateway per test (schema created, FKs on)
  - hasher: a PasswordHasher at bcrypt's minimum cost so the suite stays fast
  - services / users / roles / permissions: services wired to the gateway
  - BrokenGateway: a gateway double whose every call raises StoreError

Design: plain "sqlite:///:memory:" is enough here because every test runs
in one thread; SQLAlchemy's SingletonThreadPool hands the same connection
(and therefore the same in-memory database) to every engine.connect().

DEBUG is set before any core import so get_settings() can auto-generate
SECRET_KEY instead of raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator

# Set DEBUG before any core/identity import.
os.environ.setdefault("DEBUG", "true")

import pytest

from identity.container import IdentityServices, build_services
from identity.hashing import PasswordHasher
from identity.permissions import PermissionService
from identity.roles import RoleService
from identity.store import SqlGateway, StoreError
from identity.tokens import TokenService
from identity.users import UserService

TEST_SECRET = "test-secret-key-for-rolegate-suite-0123456789"

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class BrokenGateway:
    """Gateway double simulating a store that is unreachable.

    Every operation raises StoreError with a ConnectionError as its cause,
    and every call is recorded in .calls so tests can assert that validation
    failures never reach the store.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    def _fail(self, operation: str):
        self.calls.append(operation)
        cause = ConnectionError("database unreachable")
        raise StoreError(f"{operation} failed", cause)

    def find_unique(self, entity, criteria):
        self._fail("find_unique")

    def find_many(self, entity, criteria=None):
        self._fail("find_many")

    def create(self, entity, data):
        self._fail("create")

    def update(self, entity, key, data):
        self._fail("update")

    def delete(self, entity, key):
        self._fail("delete")

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> Generator[SqlGateway, None, None]:
    gw = SqlGateway("sqlite:///:memory:")
    yield gw
    gw.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, default_expire_seconds=60)


@pytest.fixture
def services(gateway, hasher, tokens) -> IdentityServices:
    return build_services(gateway, hasher, tokens)


@pytest.fixture
def users(services) -> UserService:
    return services.users


@pytest.fixture
def roles(services) -> RoleService:
    return services.roles


@pytest.fixture
def permissions(services) -> PermissionService:
    return services.permissions


@pytest.fixture
def broken_gateway() -> BrokenGateway:
    return BrokenGateway()
