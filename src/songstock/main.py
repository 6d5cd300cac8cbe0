"""FastAPI application factory and server entry point."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from songstock import __version__
from songstock.api.exception_handlers import register_exception_handlers
from songstock.api.routers import api_router, health
from songstock.config import Settings, get_settings
from songstock.infrastructure.lifecycle import lifespan
from songstock.infrastructure.observability import RequestLoggingMiddleware
from songstock.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Explicit settings (tests); defaults to the environment-backed
            ``get_settings()``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="SongStock API",
        description="Music catalog, inventory and order backend",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = Database(settings)

    # Middleware order: the last one added runs first, so CORS wraps request logging.
    app.add_middleware(
        RequestLoggingMiddleware,
        log_request_body=settings.observability.log_request_body,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(api_router, prefix="/api")
    return app


def run() -> None:
    """Console entry point: ``songstock``."""
    settings = get_settings()
    uvicorn.run(
        "songstock.main:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
