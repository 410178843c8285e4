"""
DurableStore — UserDirectory backed by the SQL database.

Email uniqueness comes from the table's unique constraint, so a concurrent
duplicate ``create`` loses at the database rather than in a
check-then-insert window.  Connection-level failures surface as
``StoreUnavailable`` for the router to act on.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.directory import UserDirectory, UserPatch, UserRecord
from database.models import User
from utils.errors import DuplicateEmail, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    OSError,
    asyncio.TimeoutError,
)


def _to_record(row: User) -> UserRecord:
    return UserRecord(
        id=str(row.user_id),
        username=row.username,
        email=row.email,
        password_digest=row.password,
    )


class DurableStore(UserDirectory):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session that commits on success, rolls back on error."""
        try:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except _CONNECTION_ERRORS as exc:
            logger.warning("Durable store unreachable: %s", exc)
            raise StoreUnavailable(str(exc)) from exc

    async def create(self, username: str, email: str, password_digest: str) -> UserRecord:
        try:
            async with self._session() as session:
                row = User(username=username, email=email, password=password_digest)
                session.add(row)
                await session.flush()
                record = _to_record(row)
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        logger.info("Created user %s in durable store", record.id)
        return record

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        async with self._session() as session:
            result = await session.execute(select(User).where(User.email == email))
            row = result.scalar_one_or_none()
            return _to_record(row) if row is not None else None

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        async with self._session() as session:
            row = await session.get(User, user_id)
            return _to_record(row) if row is not None else None

    async def update(self, user_id: str, patch: UserPatch) -> UserRecord:
        values = patch.as_values()
        try:
            async with self._session() as session:
                row = await session.get(User, user_id)
                if row is None:
                    raise NotFound()
                if "username" in values:
                    row.username = values["username"]
                if "email" in values:
                    row.email = values["email"]
                if "password_digest" in values:
                    row.password = values["password_digest"]
                await session.flush()
                record = _to_record(row)
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return record

    async def delete(self, user_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(User).where(User.user_id == user_id))
            return (result.rowcount or 0) > 0

    async def list(self) -> List[UserRecord]:
        async with self._session() as session:
            result = await session.execute(select(User).order_by(User.created_at))
            return [_to_record(row) for row in result.scalars().all()]
