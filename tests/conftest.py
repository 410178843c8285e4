"""
Shared fixtures: fast bcrypt, in-memory stores, a real SQLAlchemy store on
in-memory SQLite.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from auth.password import PasswordHasher
from auth.service import CredentialService
from database.durable_store import DurableStore
from database.fallback_store import FallbackStore
from database.router import StoreRouter
from database.session import build_session_factory, init_models
from database.status import StaticStoreStatus


@pytest.fixture
def hasher() -> PasswordHasher:
    # bcrypt's minimum cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def fallback_store() -> FallbackStore:
    return FallbackStore()


@pytest.fixture
def store_status() -> StaticStoreStatus:
    return StaticStoreStatus(available=True)


@pytest_asyncio.fixture
async def durable_store():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield DurableStore(build_session_factory(engine))
    await engine.dispose()


@pytest_asyncio.fixture
async def broken_durable_store(tmp_path):
    """A durable store whose database file can never be opened."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path}/missing-dir/accounts.db",
    )
    yield DurableStore(build_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def router(durable_store, fallback_store, store_status) -> StoreRouter:
    return StoreRouter(durable=durable_store, fallback=fallback_store, status=store_status)


@pytest.fixture
def credentials(fallback_store, hasher) -> CredentialService:
    return CredentialService(fallback_store, hasher)
