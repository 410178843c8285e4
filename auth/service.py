"""
CredentialService — registration, login and profile management.

Every write that carries a new password goes through ``PasswordHasher``
here, explicitly; the stores only ever receive digests.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import List, Optional

from auth.password import PasswordHasher
from database.directory import UserDirectory, UserPatch, UserRecord
from utils.errors import DuplicateEmail, InvalidCredentials, InvalidInput, NotFound

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    record: UserRecord
    migrated: bool = False


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class CredentialService:
    def __init__(self, directory: UserDirectory, hasher: PasswordHasher):
        self.directory = directory
        self.hasher = hasher
        self._dummy_digest: Optional[str] = None

    async def register(self, username: str, email: str, password: str) -> UserRecord:
        """Create an account; the password is hashed before it reaches the store."""
        username, email = _clean(username), _clean(email)
        if not username or not email or not (password or "").strip():
            raise InvalidInput("username, email and password required")

        # Best effort only: the durable store's unique constraint is what
        # actually closes the race between two concurrent registrations.
        if await self.directory.find_by_email(email) is not None:
            raise DuplicateEmail()

        digest = await self.hasher.hash(password)
        record = await self.directory.create(username, email, digest)
        logger.info("Registered user %s (%s)", record.username, record.id)
        return record

    async def _burn_verify(self, password: str) -> None:
        # Unknown emails still pay for one bcrypt check.
        if self._dummy_digest is None:
            self._dummy_digest = await self.hasher.hash("not-a-real-password")
        await self.hasher.verify(password, self._dummy_digest)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Verify credentials and return the matching record.

        Any failure raises the same ``InvalidCredentials``.  A record still
        holding a legacy plaintext password is re-hashed and written back on
        a successful login, so this read-shaped call may mutate the store.
        """
        email = _clean(email)
        if not email or not password:
            raise InvalidCredentials()

        record = await self.directory.find_by_email(email)
        if record is None:
            await self._burn_verify(password)
            raise InvalidCredentials()

        if self.hasher.looks_hashed(record.password_digest):
            if not await self.hasher.verify(password, record.password_digest):
                raise InvalidCredentials()
            logger.info("Login: %s (%s)", record.username, record.id)
            return LoginResult(record=record)

        if not hmac.compare_digest(password.encode(), (record.password_digest or "").encode()):
            raise InvalidCredentials()

        digest = await self.hasher.hash(password)
        try:
            record = await self.directory.update(record.id, UserPatch(password_digest=digest))
        except NotFound:
            logger.warning("User %s disappeared before its password could be migrated", record.id)
            return LoginResult(record=record, migrated=False)
        logger.info("Migrated legacy plaintext password for user %s", record.id)
        return LoginResult(record=record, migrated=True)

    async def update_profile(
        self,
        user_id: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> UserRecord:
        """Blank fields are ignored; a non-blank password is hashed first."""
        patch = UserPatch(
            username=_clean(username) or None,
            email=_clean(email) or None,
        )
        if password is not None and password.strip():
            patch.password_digest = await self.hasher.hash(password)
        if not patch.as_values():
            return await self.get_user(user_id)
        record = await self.directory.update(user_id, patch)
        logger.info("Updated user %s", record.id)
        return record

    async def get_user(self, user_id: str) -> UserRecord:
        record = await self.directory.find_by_id(user_id)
        if record is None:
            raise NotFound()
        return record

    async def list_users(self) -> List[UserRecord]:
        return await self.directory.list()

    async def delete_user(self, user_id: str) -> bool:
        removed = await self.directory.delete(user_id)
        if not removed:
            raise NotFound()
        logger.info("Deleted user %s", user_id)
        return True
