"""
User accounts service — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from api.routes import health_router, router as users_router
from api.web import router as web_router
from auth.dependencies import AuthGate
from auth.jwt import TokenService
from auth.password import PasswordHasher
from auth.routes import router as auth_router
from auth.service import CredentialService
from config.settings import Settings, config
from database.durable_store import DurableStore
from database.fallback_store import FallbackStore
from database.router import StoreRouter
from database.session import build_engine, build_session_factory, init_models
from database.status import DatabaseStatus

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "asyncio", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    directory: Optional[StoreRouter] = None,
) -> FastAPI:
    """
    Build the application.

    With no ``directory`` the durable store is the configured database,
    watched by a ``DatabaseStatus`` probe.  Tests pass their own router
    (e.g. in-memory stores behind a ``StaticStoreStatus``).
    """
    settings = settings or config
    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="User registration, login and account management.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    engine = None
    db_status: Optional[DatabaseStatus] = None
    if directory is None:
        engine = build_engine(settings.database_url)
        db_status = DatabaseStatus(
            engine,
            interval=settings.store_probe_interval,
            on_connect=lambda: init_models(engine),
        )
        directory = StoreRouter(
            durable=DurableStore(build_session_factory(engine)),
            fallback=FallbackStore(),
            status=db_status,
        )

    tokens = TokenService.from_settings(settings)
    app.state.directory = directory
    app.state.tokens = tokens
    app.state.auth_gate = AuthGate(tokens)
    app.state.credentials = CredentialService(
        directory, PasswordHasher(rounds=settings.bcrypt_rounds)
    )

    # Routes
    # Web views first: GET /api/users/login must win over /api/users/{user_id}
    app.include_router(web_router)
    app.include_router(auth_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(health_router)

    @app.on_event("startup")
    async def on_startup():
        if db_status is not None:
            if not await db_status.probe():
                logger.warning("Database unreachable at startup; using in-memory fallback store")
            db_status.start()
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        if db_status is not None:
            await db_status.stop()
        if engine is not None:
            await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
