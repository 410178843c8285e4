"""
FallbackStore — volatile in-process UserDirectory.

Serves requests while the durable store is unreachable.  Everything lives
in a dict and is lost on restart; this is degraded-mode availability, not a
cache, and nothing is merged back into the durable store later.
"""

from __future__ import annotations

import random
import time
from dataclasses import replace
from typing import Dict, List, Optional

from database.directory import UserDirectory, UserPatch, UserRecord
from utils.errors import DuplicateEmail, NotFound


def generate_local_id() -> str:
    """Millisecond timestamp plus a random suffix; unique enough for one process."""
    return f"{int(time.time() * 1000)}{random.randint(0, 9999)}"


class FallbackStore(UserDirectory):
    def __init__(self):
        self._users: Dict[str, UserRecord] = {}

    def _new_id(self) -> str:
        user_id = generate_local_id()
        while user_id in self._users:
            user_id = generate_local_id()
        return user_id

    def _email_taken(self, email: str, exclude_id: str | None = None) -> bool:
        return any(
            u.email == email and u.id != exclude_id for u in self._users.values()
        )

    async def create(self, username: str, email: str, password_digest: str) -> UserRecord:
        if self._email_taken(email):
            raise DuplicateEmail()
        record = UserRecord(
            id=self._new_id(),
            username=username,
            email=email,
            password_digest=password_digest,
        )
        self._users[record.id] = record
        return replace(record)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        for record in self._users.values():
            if record.email == email:
                return replace(record)
        return None

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        record = self._users.get(str(user_id))
        return replace(record) if record is not None else None

    async def update(self, user_id: str, patch: UserPatch) -> UserRecord:
        record = self._users.get(str(user_id))
        if record is None:
            raise NotFound()
        values = patch.as_values()
        if "email" in values and self._email_taken(values["email"], exclude_id=record.id):
            raise DuplicateEmail()
        updated = replace(record, **values)
        self._users[record.id] = updated
        return replace(updated)

    async def delete(self, user_id: str) -> bool:
        return self._users.pop(str(user_id), None) is not None

    async def list(self) -> List[UserRecord]:
        return [replace(u) for u in self._users.values()]
