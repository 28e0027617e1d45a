"""FastAPI application factory.

Run with: uvicorn mushee.main:app
"""

from fastapi import FastAPI

from mushee import __version__
from mushee.api.exception_handlers import register_exception_handlers
from mushee.api.routers import api_router, health
from mushee.config import Settings, get_settings
from mushee.infrastructure.lifecycle import lifespan
from mushee.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the application.

    Args:
        settings: Explicit settings (tests); defaults to environment settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="MuShee",
        description="MusicXML sheet music library with content-addressed deduplication",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    # lifespan reads this instead of the cached environment settings
    app.state.settings = settings

    app.add_middleware(
        RequestLoggingMiddleware,
        log_request_body=settings.observability.log_request_body,
    )
    register_exception_handlers(app)

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix="/health", tags=["Health"])
    return app


app = create_app()
