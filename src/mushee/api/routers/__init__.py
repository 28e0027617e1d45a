"""API router initialization."""

# Hey future me, this is the API router aggregator - main.py mounts it under settings.api_prefix
# (/api by default). Each router defines its own prefix, so endpoints end up as /api/songs,
# /api/library etc. Health probes are NOT in here; they live at /health outside the prefix.

from fastapi import APIRouter

from mushee.api.routers import health, library, songs

api_router = APIRouter()

api_router.include_router(songs.router, tags=["Songs"])
api_router.include_router(library.router, tags=["Library"])

__all__ = ["api_router", "health"]
