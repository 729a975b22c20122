from __future__ import annotations

import logging
from datetime import datetime, timezone

import jwt

logger = logging.getLogger(__name__)


class TokenInspector:
    """Read claims from a bearer token without verifying its signature.

    The client never holds the signing key; this is only used to skip a
    network round trip for tokens that are plainly expired. Opaque (non-JWT)
    tokens are left to the server.
    """

    def __init__(self, leeway_seconds: float = 0.0) -> None:
        self._leeway = leeway_seconds

    def expires_at(self, token: str) -> datetime | None:
        try:
            payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
        except jwt.PyJWTError:
            return None
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)

    def is_expired(self, token: str, now: datetime) -> bool:
        expires = self.expires_at(token)
        if expires is None:
            return False
        expired = expires.timestamp() + self._leeway <= now.timestamp()
        if expired:
            logger.debug("Stored token expired at %s", expires.isoformat())
        return expired
