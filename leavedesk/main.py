from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leavedesk.api.health import router as health_router
from leavedesk.api.router import api_router
from leavedesk.config import get_settings
from leavedesk.db import create_tables, dispose_engine
from leavedesk.exceptions import setup_exception_handlers

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from leavedesk.config import Settings

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=_LOG_FORMAT)
    # SQL echo goes through SQLAlchemy's own logger; keep it quiet unless asked for.
    if not (settings.debug or settings.database_echo):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)
    if settings.environment == "development":
        # No migrations outside production deployments; create what is missing.
        await create_tables()
    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        await dispose_engine()


def create_app() -> FastAPI:
    """Build the Leave Desk API: CORS, error handlers, health and workflow routers."""
    settings = get_settings()
    configure_logging(settings)

    show_docs = settings.environment != "production"
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
    )
    application.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-User-Id"],
    )
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)
    return application


app = create_app()
