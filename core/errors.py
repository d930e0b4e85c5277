"""
core/errors.py -- Error taxonomy shared by every rolegate component.

Pattern: tagged error values. There is a single exception type,
IdentityError, and each component owns a closed enum of kinds. Callers
branch on `error.kind`, never on the message text or on subclass checks:

    try:
        users.create(name, email, password)
    except IdentityError as exc:
        if exc.kind is UserErrorKind.ALREADY_EXISTS:
            ...

Store and library failures are never flattened into strings: the original
exception is kept on `error.cause` and chained with `raise ... from`.

Layer rule: core/ is the kernel. This module may not import from identity/.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union


class UserErrorKind(str, Enum):
    NOT_FOUND = "user_not_found"
    ALREADY_EXISTS = "user_already_exists"
    INVALID_NAME = "invalid_name"
    INVALID_EMAIL = "invalid_email"
    INVALID_PASSWORD = "invalid_password"
    INVALID_CREDENTIALS = "invalid_credentials"
    DATABASE_ERROR = "user_database_error"


class RoleErrorKind(str, Enum):
    NOT_FOUND = "role_not_found"
    ALREADY_EXISTS = "role_already_exists"
    NAME_REQUIRED = "role_name_required"
    DATABASE_ERROR = "role_database_error"


class PermissionErrorKind(str, Enum):
    NOT_FOUND = "permission_not_found"
    DATABASE_ERROR = "permission_database_error"


class CredentialErrorKind(str, Enum):
    # One kind for every bcrypt failure; the message says which step broke.
    FATAL = "credential_fatal"


class TokenErrorKind(str, Enum):
    SIGNING_FAILED = "token_signing_failed"
    VERIFICATION_FAILED = "token_verification_failed"
    EXPIRED = "token_expired"


class EmailErrorKind(str, Enum):
    FATAL = "email_validation_fatal"


class ConfigErrorKind(str, Enum):
    MISSING_VARIABLE = "missing_config_variable"


ErrorKind = Union[
    UserErrorKind,
    RoleErrorKind,
    PermissionErrorKind,
    CredentialErrorKind,
    TokenErrorKind,
    EmailErrorKind,
    ConfigErrorKind,
]


class IdentityError(Exception):
    """A failure tagged with its kind, a human-readable message and its cause.

    cause is the lower-level exception (SQLAlchemy, bcrypt, jose...) that
    triggered this error, or None for validation failures raised before any
    collaborator was called.
    """

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message
        self.cause = cause

    def __repr__(self) -> str:
        return f"IdentityError(kind={self.kind.name}, message={self.message!r}, cause={self.cause!r})"
