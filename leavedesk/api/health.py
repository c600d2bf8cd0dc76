import logging
import time
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leavedesk.config import get_settings
from leavedesk.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class DatabaseHealth(BaseModel):
    reachable: bool
    latency_ms: float | None = None


class HealthResponse(BaseModel):
    """Liveness plus a database round trip; 200 even when degraded."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    database: DatabaseHealth


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    settings = get_settings()
    started = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check could not reach the database")
        database = DatabaseHealth(reachable=False)
    else:
        database = DatabaseHealth(reachable=True, latency_ms=round((time.perf_counter() - started) * 1000, 2))

    return HealthResponse(
        status="ok" if database.reachable else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=database,
    )
