"""
JWT-style token creation and verification.

Tokens are base64url-encoded JSON claims signed with HMAC-SHA256:

    <base64url(claims)>.<hex signature>

Claims: ``sub`` (user id), ``username``, ``iat``, ``exp``.  Tokens are
stateless, so validity depends only on the signature and ``exp``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import Callable

from utils.errors import ExpiredToken, InvalidToken

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "dev_jwt_secret"
DEFAULT_EXPIRY_SECONDS = 3600


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    username: str
    issued_at: int
    expires_at: int


class TokenService:
    def __init__(
        self,
        secret: str,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret.encode()
        self.expiry_seconds = expiry_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], float] = time.time) -> "TokenService":
        """Build from config; warns once when falling back to the dev secret."""
        secret = settings.jwt_secret
        if not secret:
            logger.warning(
                "JWT_SECRET is not set; using the insecure development secret. "
                "Set JWT_SECRET before deploying."
            )
            secret = DEV_JWT_SECRET
        return cls(secret, expiry_seconds=settings.jwt_expiry_seconds, clock=clock)

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def issue(self, subject_id: str, username: str) -> str:
        """Create a signed token for ``subject_id`` expiring after the fixed horizon."""
        now = int(self._clock())
        payload = {
            "sub": str(subject_id),
            "username": username,
            "iat": now,
            "exp": now + self.expiry_seconds,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode() + "." + self._sign(raw)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify token and return its claims.

        Raises ``InvalidToken`` for malformed or tampered tokens (checked
        first) and ``ExpiredToken`` once ``exp`` has passed.
        """
        parts = (token or "").split(".")
        if len(parts) != 2:
            raise InvalidToken("bad format")
        try:
            raw = urlsafe_b64decode(parts[0].encode())
        except (ValueError, TypeError) as exc:
            raise InvalidToken("bad encoding") from exc
        if not hmac.compare_digest(parts[1].encode(), self._sign(raw).encode()):
            raise InvalidToken("bad signature")

        try:
            payload = json.loads(raw)
            claims = TokenClaims(
                subject_id=str(payload["sub"]),
                username=str(payload.get("username", "")),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidToken("bad claims") from exc

        if self._clock() > claims.expires_at:
            raise ExpiredToken("token expired")
        return claims
