"""
identity/hashing.py -- One-way password hashing with bcrypt.

bcrypt is used directly (no passlib wrapper): passlib's wrap-bug detection
hashes a >72 byte secret that bcrypt 4.x rejects. Every internal bcrypt
failure (malformed stored hash, oversized input, bad salt) is reported as an
IdentityError tagged CredentialErrorKind.FATAL; a simple mismatch is not an error
and returns False.
"""

from __future__ import annotations

import bcrypt

from core.errors import CredentialErrorKind, IdentityError
from core.validation import MAX_PASSWORD_BYTES


class PasswordHasher:
    """bcrypt hasher with a configurable cost factor.

    rounds=12 is the production default; tests use 4 so the suite stays fast.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        try:
            return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError, AttributeError) as exc:
            raise IdentityError(CredentialErrorKind.FATAL, "Password hashing failed", exc) from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed, False on a mismatch."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError) as exc:
            raise IdentityError(CredentialErrorKind.FATAL, "Password verification failed", exc) from exc

    def burn(self, plain: str) -> None:
        """Run a full verification against a throwaway hash and discard the result.

        Called when the account does not exist so response time does not reveal
        whether an email is registered. The dummy hash is built on first use.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("rolegate_timing_dummy")
        # Truncate to what bcrypt reads so oversized input still costs a full round.
        bcrypt.checkpw(plain.encode("utf-8")[:MAX_PASSWORD_BYTES], self._dummy_hash.encode("utf-8"))
