"""
identity/users.py -- Account lifecycle: registration, authentication, updates.

Validation order for create() and update():
  1. Pure field rules (name, email shape, password length) -- no I/O.
  2. Email uniqueness lookup, only when the email is new or changing.
  3. bcrypt hashing of the password, if one was supplied.
  4. A single gateway write.

The uniqueness lookup is a fast path for a friendly error. Two concurrent
registrations can both pass it; the UNIQUE(email) constraint then rejects the
loser and the resulting UniqueViolation is reported as ALREADY_EXISTS, not as
a generic DATABASE_ERROR.

UserAccount values are immutable: update() returns a new account built only
after the write succeeded, so a failed write never leaks into caller state.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from core.errors import IdentityError, UserErrorKind
from core.validation import MAX_PASSWORD_BYTES, is_valid_name, is_valid_password, validate_email
from identity.hashing import PasswordHasher
from identity.models import UserAccount
from identity.store import SqlGateway, StoreError, UniqueViolation

logger = logging.getLogger("rolegate.identity.users")


def _row_to_account(row: dict) -> UserAccount:
    return UserAccount(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
    )


def _check_name(name: str) -> None:
    if not is_valid_name(name):
        raise IdentityError(UserErrorKind.INVALID_NAME, f"Invalid name: {name}")


def _check_email(email: str) -> None:
    if not validate_email(email):
        raise IdentityError(UserErrorKind.INVALID_EMAIL, f"Invalid email: {email}")


def _check_password(password: str) -> None:
    # Never echo the password itself.
    if not is_valid_password(password):
        raise IdentityError(UserErrorKind.INVALID_PASSWORD, "Invalid password")


class UserService:
    """Account operations over an injected gateway and password hasher.

    Usage:
        users = UserService(SqlGateway(url), PasswordHasher())
        account = users.create("Alice", "alice@example.com", "correct horse")
        account = users.authenticate("alice@example.com", "correct horse")
        account = users.update(account, name="Alice B.")
        users.delete(account)
    """

    def __init__(self, gateway: SqlGateway, hasher: PasswordHasher) -> None:
        self.gateway = gateway
        self.hasher = hasher

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list[UserAccount]:
        try:
            rows = self.gateway.find_many("user")
        except StoreError as exc:
            raise IdentityError(UserErrorKind.DATABASE_ERROR, "Could not list users", exc) from exc
        return [_row_to_account(r) for r in rows]

    def get_by_id(self, user_id: int) -> UserAccount:
        row = self._find_row({"id": user_id})
        if row is None:
            raise IdentityError(UserErrorKind.NOT_FOUND, f"User with id {user_id} not found")
        return _row_to_account(row)

    def get_by_email(self, email: str) -> UserAccount:
        row = self._find_row({"email": email})
        if row is None:
            raise IdentityError(UserErrorKind.NOT_FOUND, f"User with email {email} not found")
        return _row_to_account(row)

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def create(self, name: str, email: str, password: str) -> UserAccount:
        _check_name(name)
        _check_email(email)
        _check_password(password)

        if self._find_row({"email": email}) is not None:
            raise IdentityError(UserErrorKind.ALREADY_EXISTS, f"User with email {email} already exists")

        password_hash = self.hasher.hash(password)

        try:
            row = self.gateway.create("user", {"name": name, "email": email, "password_hash": password_hash})
        except UniqueViolation as exc:
            raise IdentityError(UserErrorKind.ALREADY_EXISTS, f"User with email {email} already exists", exc) from exc
        except StoreError as exc:
            raise IdentityError(UserErrorKind.DATABASE_ERROR, f"Could not create user {email}", exc) from exc

        logger.info("User %s created with id %s", email, row["id"])
        return _row_to_account(row)

    def authenticate(self, email: str, password: str) -> UserAccount:
        """Return the account if password matches the stored hash.

        An unknown email still costs one bcrypt verification (against a
        dummy hash) before NOT_FOUND is raised, so response time does not
        reveal which emails are registered.
        """
        row = self._find_row({"email": email})
        if row is None:
            self.hasher.burn(password)
            raise IdentityError(UserErrorKind.NOT_FOUND, f"User with email {email} not found")

        account = _row_to_account(row)
        # Passwords over MAX_PASSWORD_BYTES are never stored and bcrypt 5 refuses them.
        oversized = len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
        if oversized:
            self.hasher.burn(password)
        if oversized or not self.hasher.verify(password, account.password_hash):
            logger.warning("Rejected login for user id %s: wrong password", account.id)
            raise IdentityError(
                UserErrorKind.INVALID_CREDENTIALS, f"Invalid password for user with email {email}"
            )
        return account

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update(
        self,
        account: UserAccount,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserAccount:
        """Validate and persist the supplied fields; return the updated account.

        Fields left as None are untouched. Email uniqueness is only checked
        when the email actually changes. Calling with no fields is a no-op
        that returns account unchanged.
        """
        if name is not None:
            _check_name(name)
        if email is not None:
            _check_email(email)
        if password is not None:
            _check_password(password)

        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if email is not None:
            if email != account.email and self._find_row({"email": email}) is not None:
                raise IdentityError(UserErrorKind.ALREADY_EXISTS, f"User with email {email} already exists")
            changes["email"] = email
        if password is not None:
            changes["password_hash"] = self.hasher.hash(password)

        if not changes:
            return account

        try:
            self.gateway.update("user", {"id": account.id}, changes)
        except UniqueViolation as exc:
            raise IdentityError(UserErrorKind.ALREADY_EXISTS, f"User with email {email} already exists", exc) from exc
        except StoreError as exc:
            raise IdentityError(UserErrorKind.DATABASE_ERROR, f"Could not update user {account.id}", exc) from exc

        logger.info("User %s updated (%s)", account.id, ", ".join(sorted(changes)))
        return replace(account, **changes)

    def delete(self, account: UserAccount) -> None:
        """Delete the account. A missing row is DATABASE_ERROR, not NOT_FOUND."""
        try:
            self.gateway.delete("user", {"id": account.id})
        except StoreError as exc:
            raise IdentityError(UserErrorKind.DATABASE_ERROR, f"Could not delete user {account.id}", exc) from exc
        logger.info("User %s deleted", account.id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find_row(self, criteria: dict[str, Any]) -> Optional[dict]:
        try:
            return self.gateway.find_unique("user", criteria)
        except StoreError as exc:
            raise IdentityError(UserErrorKind.DATABASE_ERROR, f"Could not look up user {criteria!r}", exc) from exc
