"""Identity service application factory.

Learn: create_app() returns a configured FastAPI instance. Everything a
request needs (settings, token codec, database) is built here once and
hung on app.state; request handlers only ever read it.

Run with: uvicorn --factory microtodo.identity.main:create_app --port 8081
(or: microtodo serve identity)
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from microtodo import __version__
from microtodo.auth.jwt import TokenCodec
from microtodo.auth.public import IDENTITY_PUBLIC_PATHS
from microtodo.auth.verifier import TokenVerifier
from microtodo.config import Settings, get_settings
from microtodo.db.engine import Database
from microtodo.errors import register_exception_handlers
from microtodo.health import router as health_router
from microtodo.identity.api import auth_router, internal_router, users_router
from microtodo.identity.models import Base
from microtodo.logging import configure_logging
from microtodo.middleware import install_middleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables at startup, release the connection pool at shutdown."""
    settings: Settings = app.state.settings
    logger.info(
        "identity.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.identity_port,
    )
    await app.state.db.create_all(Base.metadata)

    yield

    logger.info("identity.shutdown")
    await app.state.db.dispose()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build and return the identity service application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="MicroTodo Identity Service",
        description="User accounts and bearer token issuance",
        version=__version__,
        lifespan=lifespan,
    )

    codec = TokenCodec.from_settings(settings)
    app.state.settings = settings
    app.state.codec = codec
    app.state.db = database or Database(settings.identity_database_url, echo=settings.debug)

    install_middleware(
        app,
        settings,
        verifier=TokenVerifier(codec),
        public_paths=IDENTITY_PUBLIC_PATHS,
        service="identity",
    )
    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(users_router, tags=["users"])
    app.include_router(internal_router, tags=["internal"])
    return app
