"""
UserDirectory — abstract persistence interface for user records.

Implemented by ``DurableStore`` (SQLAlchemy), ``FallbackStore``
(in-process) and ``StoreRouter`` which composes the two.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class UserRecord:
    id: str
    username: str
    email: str
    password_digest: str

    def public(self) -> Dict[str, Any]:
        """Fields safe to return to clients (never the digest)."""
        return {"id": self.id, "username": self.username, "email": self.email}

    def __repr__(self) -> str:
        return f"UserRecord(id={self.id!r}, username={self.username!r}, email={self.email!r})"


@dataclass
class UserPatch:
    """Partial update; ``None`` leaves the field untouched."""

    username: Optional[str] = None
    email: Optional[str] = None
    password_digest: Optional[str] = None

    def as_values(self) -> Dict[str, str]:
        return {k: v for k, v in vars(self).items() if v is not None}


class UserDirectory(ABC):
    """Abstract base for user-record storage."""

    @abstractmethod
    async def create(self, username: str, email: str, password_digest: str) -> UserRecord:
        """
        Persist a new record and return it with its assigned ``id``.

        Raises ``DuplicateEmail`` if ``email`` is already taken.
        """
        ...

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def update(self, user_id: str, patch: UserPatch) -> UserRecord:
        """
        Apply ``patch`` and return the updated record.

        Raises ``NotFound`` or ``DuplicateEmail``.
        """
        ...

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Return True if a record was removed."""
        ...

    @abstractmethod
    async def list(self) -> List[UserRecord]:
        ...
