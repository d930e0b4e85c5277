"""
core/validation.py -- Field-level rules shared by the identity services.

All checks are pure and synchronous. A value that fails a rule returns False;
only an internal failure of the matching engine itself raises (EmailErrorKind.FATAL).
The services decide which error kind a failed rule maps to.
"""

import re

from core.errors import EmailErrorKind, IdentityError

MIN_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 8
# Exclusive upper bound: a 100-character address is rejected.
MAX_EMAIL_LENGTH = 100
# bcrypt only reads the first 72 bytes and bcrypt 5 rejects anything longer.
MAX_PASSWORD_BYTES = 72

# local@domain.tld -- no whitespace, exactly one "@", a dot in the domain part.
# Always used with fullmatch(): a "$" anchor would accept a trailing newline.
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def validate_email(email: str) -> bool:
    """Return True if email has the local@domain.tld shape and is under 100 chars."""
    try:
        return len(email) < MAX_EMAIL_LENGTH and _EMAIL_RE.fullmatch(email) is not None
    except TypeError as exc:
        raise IdentityError(EmailErrorKind.FATAL, f"Cannot validate email of type {type(email).__name__}", exc) from exc


def is_valid_name(name: str) -> bool:
    return len(name) >= MIN_NAME_LENGTH


def is_valid_password(password: str) -> bool:
    """At least 8 characters and at most 72 bytes once UTF-8 encoded."""
    return len(password) >= MIN_PASSWORD_LENGTH and len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


def is_blank(value: str) -> bool:
    """True for the empty string and for strings made only of whitespace."""
    return not value or not value.strip()
