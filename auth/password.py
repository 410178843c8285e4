"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and a fixed work factor.  Hashing runs in a worker thread so it
never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import re

import bcrypt

from utils.errors import InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72  # bcrypt only reads the first 72 bytes

# $2a$ / $2b$ / $2y$, two-digit cost, 22 chars of salt + 31 chars of hash.
_BCRYPT_DIGEST = re.compile(r"\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}")


class PasswordHasher:
    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds

    def hash_sync(self, plaintext: str) -> str:
        if not plaintext:
            raise InvalidInput("password required")
        if len(plaintext.encode()) > MAX_PASSWORD_BYTES:
            raise InvalidInput("password too long")
        try:
            digest = bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=self.rounds))
        except ValueError as exc:
            logger.warning("bcrypt rejected a password: %s", exc)
            raise InvalidInput("password too long") from exc
        return digest.decode()

    def verify_sync(self, plaintext: str, digest: str) -> bool:
        """Constant-time comparison against a bcrypt hash."""
        if not plaintext or not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode(), digest.encode())
        except (ValueError, TypeError):
            return False

    async def hash(self, plaintext: str) -> str:
        """Hash with a fresh salt; two calls on the same input differ."""
        return await asyncio.to_thread(self.hash_sync, plaintext)

    async def verify(self, plaintext: str, digest: str) -> bool:
        return await asyncio.to_thread(self.verify_sync, plaintext, digest)

    @staticmethod
    def looks_hashed(value: str | None) -> bool:
        """
        True when ``value`` carries the bcrypt digest format tag.

        Only the legacy-plaintext migration path consults this; normal
        verification always goes through ``verify``.
        """
        return bool(value) and _BCRYPT_DIGEST.fullmatch(value) is not None
