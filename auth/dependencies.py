"""
AuthGate — request-level bearer-token guard.

Provides the ``AuthGate`` class and the ``get_current_user_id`` FastAPI
dependency used by protected routes.
"""

from __future__ import annotations

import logging
from typing import Mapping

from fastapi import Request

from auth.jwt import TokenService
from utils.errors import Unauthorized

logger = logging.getLogger(__name__)


class AuthGate:
    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    def authorize(self, headers: Mapping[str, str]) -> str:
        """
        Extract and verify the Bearer token, returning the authenticated
        subject id.  Every failure raises a detail-free ``Unauthorized``.
        """
        header = headers.get("authorization") or headers.get("Authorization") or ""
        parts = header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
            raise Unauthorized("missing or malformed authorization header")
        try:
            claims = self.tokens.verify(parts[1])
        except Unauthorized as exc:
            logger.debug("Rejected bearer token: %s", exc.reason)
            raise Unauthorized(exc.reason) from exc
        return claims.subject_id


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency: the caller's user id, or 401."""
    gate: AuthGate = request.app.state.auth_gate
    user_id = gate.authorize(request.headers)
    request.state.user_id = user_id
    return user_id
