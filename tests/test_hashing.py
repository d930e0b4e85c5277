"""Unit tests for identity/hashing.py -- bcrypt wrapper."""

import pytest

from core.errors import CredentialErrorKind, IdentityError


def test_hash_is_not_plaintext(hasher):
    hashed = hasher.hash("password")
    assert hashed != "password"
    assert hashed.startswith("$2")


def test_same_password_gets_distinct_salts(hasher):
    assert hasher.hash("password") != hasher.hash("password")


def test_verify_match_and_mismatch(hasher):
    hashed = hasher.hash("password")
    assert hasher.verify("password", hashed) is True
    assert hasher.verify("bad_password", hashed) is False


def test_malformed_stored_hash_is_fatal(hasher):
    with pytest.raises(IdentityError) as exc_info:
        hasher.verify("password", "not-a-bcrypt-hash")
    assert exc_info.value.kind is CredentialErrorKind.FATAL
    assert exc_info.value.cause is not None


def test_non_string_input_is_fatal(hasher):
    with pytest.raises(IdentityError) as exc_info:
        hasher.hash(None)
    assert exc_info.value.kind is CredentialErrorKind.FATAL


def test_burn_never_raises(hasher):
    hasher.burn("anything")
    hasher.burn("")


def test_burn_accepts_input_longer_than_bcrypt_reads(hasher):
    hasher.burn("p" * 80)
    hasher.burn("é" * 60)
