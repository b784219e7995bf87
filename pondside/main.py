"""
Pondside Competition Engine - Main Application Entry Point

Venue-side service for fishing competitions:
- Seat booking with optimistic capacity counters
- QR-driven check-in, rod label issuance and weighing
- Live leaderboards with a TTL cache (Redis or in-process)
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from pondside.api.errors import register_exception_handlers
from pondside.api.middleware import RequestLoggingMiddleware
from pondside.api.router import api_router
from pondside.core.config import Settings, get_settings
from pondside.core.logging import get_logger, setup_logging
from pondside.core.metrics import metrics_endpoint
from pondside.db.session import Database
from pondside.services.notification_service import LoggingNotifier
from pondside.services.strategy_factory import build_leaderboard_cache


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging(settings)
        logger = get_logger(__name__)

        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

        app.state.database = Database(settings.DATABASE_URL, settings)
        app.state.leaderboard_cache = await build_leaderboard_cache(settings)
        app.state.notifier = LoggingNotifier()

        yield

        # Cleanup
        await app.state.leaderboard_cache.close()
        await app.state.database.dispose()
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Seat allocation, check-in, rod issuance, weighing and leaderboards for fishing venues",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Routes
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint for Docker and load balancers."""
        database = "ok"
        try:
            async with request.app.state.database.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            get_logger(__name__).error("health_database_unreachable", error=str(e))
            database = "unreachable"

        return {
            "status": "healthy" if database == "ok" else "degraded",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": database,
            "cache": type(request.app.state.leaderboard_cache).__name__,
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
