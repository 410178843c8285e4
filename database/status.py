"""
Connectivity status for the durable store.

The router asks a ``StoreStatusProvider`` on every call which store should
serve it.  ``DatabaseStatus`` keeps the flag current with a background
``SELECT 1`` probe; ``StaticStoreStatus`` is a plain settable flag for tests
and for running without a database.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class StoreStatusProvider(ABC):
    @abstractmethod
    def is_available(self) -> bool:
        """True when the durable store should serve requests."""
        ...

    @abstractmethod
    def report_failure(self) -> None:
        """Called by the router after the durable store failed a request."""
        ...


class StaticStoreStatus(StoreStatusProvider):
    def __init__(self, available: bool = True):
        self.available = available

    def is_available(self) -> bool:
        return self.available

    def set_available(self, available: bool) -> None:
        self.available = available

    def report_failure(self) -> None:
        self.available = False


class DatabaseStatus(StoreStatusProvider):
    """Tracks the engine's reachability with a periodic probe."""

    def __init__(
        self,
        engine: AsyncEngine,
        interval: float = 5.0,
        on_connect: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._engine = engine
        self._interval = interval
        self._on_connect = on_connect
        self._available = False
        self._task: Optional[asyncio.Task] = None

    def is_available(self) -> bool:
        return self._available

    def report_failure(self) -> None:
        if self._available:
            logger.warning("Database connection lost; serving from in-memory fallback store")
        self._available = False

    async def probe(self) -> bool:
        """Run one ``SELECT 1`` and update the flag."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            if not self._available and self._on_connect is not None:
                await self._on_connect()
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            if self._available:
                logger.error("Database connection error: %s", exc)
            self._available = False
            return False

        if not self._available:
            logger.info("Database connected")
        self._available = True
        return True

    async def _monitor(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.probe()
            except Exception:
                logger.exception("Store connectivity check failed; will retry")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._monitor())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
