"""
StoreRouter — a UserDirectory that picks the durable or fallback store per call.

The choice is re-evaluated for every operation, so the first request after
a reconnect already hits the durable store.  Records created in the
fallback store stay there; they are not merged when the database returns.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional

from database.directory import UserDirectory, UserPatch, UserRecord
from database.status import StoreStatusProvider
from utils.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class StoreRouter(UserDirectory):
    def __init__(
        self,
        durable: UserDirectory,
        fallback: UserDirectory,
        status: StoreStatusProvider,
    ):
        self.durable = durable
        self.fallback = fallback
        self.status = status

    @property
    def mode(self) -> str:
        return "durable" if self.status.is_available() else "fallback"

    async def _dispatch(self, op: str, *args: Any) -> Any:
        if self.status.is_available():
            method: Callable[..., Awaitable[Any]] = getattr(self.durable, op)
            try:
                return await method(*args)
            except StoreUnavailable:
                logger.warning("Durable store failed during %s; switching to fallback store", op)
                self.status.report_failure()
        return await getattr(self.fallback, op)(*args)

    async def create(self, username: str, email: str, password_digest: str) -> UserRecord:
        return await self._dispatch("create", username, email, password_digest)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._dispatch("find_by_email", email)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        return await self._dispatch("find_by_id", user_id)

    async def update(self, user_id: str, patch: UserPatch) -> UserRecord:
        return await self._dispatch("update", user_id, patch)

    async def delete(self, user_id: str) -> bool:
        return await self._dispatch("delete", user_id)

    async def list(self) -> List[UserRecord]:
        return await self._dispatch("list")
