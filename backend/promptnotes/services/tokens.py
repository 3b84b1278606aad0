"""
Signed session tokens.

Tokens are HS256 JWTs carrying ``{userId, iat, exp}``. Nothing is stored
server-side: a token is valid while its signature checks out and it has not
expired, so logging out only drops the cookie.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from jose.exceptions import JWTError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY = timedelta(days=7)


class TokenService:
    def __init__(
        self,
        secret: str,
        *,
        expires_in: timedelta = DEFAULT_EXPIRY,
        algorithm: str = "HS256",
    ):
        self.secret = secret
        self.expires_in = expires_in
        self.algorithm = algorithm

    def issue(self, user_id: str, *, now: datetime | None = None) -> str:
        """Sign a token for ``user_id`` that expires ``expires_in`` from now."""
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "userId": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.expires_in).timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str | None) -> dict[str, Any] | None:
        """
        Verify a token.

        Returns:
            ``{"userId": ...}`` if valid, None for any failure (malformed,
            expired, tampered, or missing the user id).
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug("Session token rejected: %s", e)
            return None
        except Exception as e:
            logger.debug("Unexpected error verifying session token: %s", e)
            return None

        user_id = payload.get("userId")
        if not user_id:
            return None
        return {"userId": str(user_id)}
