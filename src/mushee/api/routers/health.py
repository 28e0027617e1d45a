"""Health check endpoints for Docker/Kubernetes probes.

- /health/live  -> process is up, no dependency checks
- /health/ready -> database answers and blob storage is mounted
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive")
    timestamp: str = Field(description="ISO timestamp")


class ReadinessStatus(BaseModel):
    """Readiness probe response."""

    status: str = Field(description="ready or not_ready")
    timestamp: str = Field(description="ISO timestamp")
    database: bool = Field(description="Database connection OK")
    storage: bool = Field(description="Blob storage directory available")


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe - 200 while the process runs."""
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_probe(request: Request) -> JSONResponse:
    """Readiness probe - 503 until the database and blob store are usable."""
    db_ok = False
    db = getattr(request.app.state, "db", None)
    if db is not None:
        try:
            db_ok = await db.ping()
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Readiness check: database unavailable: %s", e)

    blob_store = getattr(request.app.state, "blob_store", None)
    storage_ok = blob_store is not None and blob_store.root.is_dir()

    is_ready = db_ok and storage_ok
    response = ReadinessStatus(
        status="ready" if is_ready else "not_ready",
        timestamp=datetime.now(UTC).isoformat(),
        database=db_ok,
        storage=storage_ok,
    )
    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)
