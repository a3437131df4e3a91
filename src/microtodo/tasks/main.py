"""Task service application factory.

Learn: Same shape as the identity service: settings, token codec,
database and the identity client are built once in create_app() and kept
on app.state. The task service holds the same JWT secret as the identity
service but never issues tokens, it only verifies them.

Run with: uvicorn --factory microtodo.tasks.main:create_app --port 8082
(or: microtodo serve tasks)
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from microtodo import __version__
from microtodo.auth.jwt import TokenCodec
from microtodo.auth.public import TASK_PUBLIC_PATHS
from microtodo.auth.verifier import TokenVerifier
from microtodo.config import Settings, get_settings
from microtodo.db.engine import Database
from microtodo.errors import register_exception_handlers
from microtodo.health import router as health_router
from microtodo.logging import configure_logging
from microtodo.middleware import install_middleware
from microtodo.tasks.api import router as tasks_router
from microtodo.tasks.identity_client import IdentityClient
from microtodo.tasks.models import Base

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "tasks.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.task_port,
        identity_service_url=settings.identity_service_url,
    )
    await app.state.db.create_all(Base.metadata)

    yield

    logger.info("tasks.shutdown")
    await app.state.identity_client.aclose()
    await app.state.db.dispose()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    identity_client: Optional[IdentityClient] = None,
) -> FastAPI:
    """Build and return the task service application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="MicroTodo Task Service",
        description="Per-user to-do items behind bearer-token authentication",
        version=__version__,
        lifespan=lifespan,
    )

    codec = TokenCodec.from_settings(settings)
    app.state.settings = settings
    app.state.db = database or Database(settings.task_database_url, echo=settings.debug)
    app.state.identity_client = identity_client or IdentityClient(
        base_url=settings.identity_service_url,
        service_key=settings.service_api_key,
        timeout_seconds=settings.identity_timeout_seconds,
    )

    install_middleware(
        app,
        settings,
        verifier=TokenVerifier(codec),
        public_paths=TASK_PUBLIC_PATHS,
        service="tasks",
    )
    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(tasks_router, tags=["tasks"])
    return app
