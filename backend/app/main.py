"""
Movie Booking API - Main Application Entry Point

A movie-theater booking service demonstrating:
- Seat reservation that never double-books, enforced by one isolated
  transaction per attempt plus a unique constraint on booked seats
- An injected storage handle (app.state.db) instead of a global client
- Redis caching of the movie catalog with prefix invalidation
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.exceptions import BookingError, booking_error_handler
from app.core.logging import setup_logging, get_logger
from app.core.metrics import metrics_endpoint
from app.api.router import api_router
from app.api.middleware import RequestLoggingMiddleware
from app.db.session import Database
from app.services.cache_service import get_redis, close_redis, get_cache_stats


def create_app(db: Optional[Database] = None) -> FastAPI:
    """
    Build the application. Pass `db` to use an existing storage handle
    (tests do); otherwise one is created from settings at startup.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging()
        logger = get_logger(__name__)

        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
        )

        owns_db = getattr(app.state, "db", None) is None
        if owns_db:
            app.state.db = Database.from_settings(settings)
        if settings.DB_AUTO_CREATE:
            await app.state.db.create_all()

        redis_client = await get_redis()
        if redis_client:
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Running without cache")

        yield

        await close_redis()
        if owns_db:
            await app.state.db.dispose()
            app.state.db = None
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Movie booking API with concurrency-safe seat reservations",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(BookingError, booking_error_handler)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        cache_stats = await get_cache_stats()
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "cache": cache_stats,
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    def metrics():
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
