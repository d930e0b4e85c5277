"""
identity/tokens.py -- Signed token issuance and verification.

Used alongside the identity services (typically right after
UserService.authenticate), never by them.

  JWT: python-jose with HS256, signed with SECRET_KEY. The "exp" claim is
       set from expires_in seconds, or Settings.token_expire_seconds when the
       caller does not pass one.

  Failures: unlike a soft "return None" check, every failure raises an
       IdentityError tagged with a TokenErrorKind so the caller can tell an
       expired session (EXPIRED) from a forged or corrupt one
       (VERIFICATION_FAILED).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import IdentityError, TokenErrorKind

logger = logging.getLogger("rolegate.identity.tokens")

_ALGORITHM = "HS256"


class TokenService:
    """Sign and verify JWTs with a shared secret.

    Usage:
        tokens = TokenService(settings.secret_key, default_expire_seconds=3600)
        token = tokens.sign({"sub": account.email, "user_id": account.id})
        payload = tokens.verify(token)
    """

    def __init__(self, secret_key: str, default_expire_seconds: int = 3600) -> None:
        self._secret_key = secret_key
        self.default_expire_seconds = default_expire_seconds

    def sign(self, payload: dict[str, Any], expires_in: Optional[int] = None) -> str:
        """Encode payload with an expiry of expires_in seconds from now.

        Any "exp" already present in payload is overwritten.
        """
        duration = expires_in if expires_in is not None else self.default_expire_seconds
        claims = dict(payload)
        claims["exp"] = datetime.now(timezone.utc) + timedelta(seconds=duration)
        try:
            return jwt.encode(claims, self._secret_key, algorithm=_ALGORITHM)
        except (JWTError, TypeError, ValueError) as exc:
            raise IdentityError(TokenErrorKind.SIGNING_FAILED, "Token signing failed", exc) from exc

    def verify(self, token: str) -> dict[str, Any]:
        """Decode token and return its claims. Raises EXPIRED or VERIFICATION_FAILED."""
        try:
            return jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise IdentityError(TokenErrorKind.EXPIRED, "Token has expired", exc) from exc
        except JWTError as exc:
            logger.warning("Rejected token: %s", exc)
            raise IdentityError(TokenErrorKind.VERIFICATION_FAILED, "Token verification failed", exc) from exc
