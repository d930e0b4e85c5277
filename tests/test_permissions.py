"""Tests for identity/permissions.py -- name-keyed permission records.

Covers:
- save() / get_by_name() round trip and NOT_FOUND
- duplicates and missing rows surface as DATABASE_ERROR (store-enforced)
- delete() removing the permission from every role
"""

import pytest

from core.errors import IdentityError, PermissionErrorKind
from identity.models import Permission
from identity.permissions import PermissionService
from identity.store import RowNotFound, UniqueViolation


class TestSave:
    def test_save_then_get(self, permissions):
        permissions.save("x")
        assert permissions.get_by_name("x").name == "x"

    def test_duplicate_is_database_error(self, permissions):
        permissions.save("x")
        with pytest.raises(IdentityError) as exc_info:
            permissions.save("x")
        assert exc_info.value.kind is PermissionErrorKind.DATABASE_ERROR
        assert isinstance(exc_info.value.cause, UniqueViolation)

    def test_save_does_not_pre_check(self, gateway, monkeypatch):
        service = PermissionService(gateway)
        monkeypatch.setattr(gateway, "find_unique", lambda *a, **kw: pytest.fail("unexpected lookup"))
        assert service.save("reports:export") == Permission("reports:export")


class TestGetByName:
    def test_missing_is_not_found(self, permissions):
        with pytest.raises(IdentityError) as exc_info:
            permissions.get_by_name("test_permission")
        assert exc_info.value.kind is PermissionErrorKind.NOT_FOUND

    def test_transport_failure_is_database_error(self, broken_gateway):
        with pytest.raises(IdentityError) as exc_info:
            PermissionService(broken_gateway).get_by_name("x")
        assert exc_info.value.kind is PermissionErrorKind.DATABASE_ERROR

    def test_get_many_skips_unknown_names(self, permissions):
        permissions.save("a")
        permissions.save("b")
        found = permissions.get_many(["a", "b", "zzz", "a"])
        assert sorted(p.name for p in found) == ["a", "b"]

    def test_get_many_empty(self, permissions):
        assert permissions.get_many([]) == []


class TestDelete:
    def test_delete_then_get_is_not_found(self, permissions):
        permission = permissions.save("test_permission")
        permissions.delete(permission)
        with pytest.raises(IdentityError) as exc_info:
            permissions.get_by_name("test_permission")
        assert exc_info.value.kind is PermissionErrorKind.NOT_FOUND

    def test_delete_missing_is_database_error(self, permissions):
        with pytest.raises(IdentityError) as exc_info:
            permissions.delete(Permission("test_permission"))
        assert exc_info.value.kind is PermissionErrorKind.DATABASE_ERROR
        assert isinstance(exc_info.value.cause, RowNotFound)

    def test_delete_detaches_from_roles(self, permissions, roles):
        permission = permissions.save("articles:publish")
        role = roles.add_permission(roles.create("publisher"), permission)
        permissions.delete(permission)
        assert roles.get_by_id(role.id).permissions == ()
