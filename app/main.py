"""FastAPI application entrypoint: lifespan, routers, middleware."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from sqlalchemy import text

from app.config import get_settings
from app.database import engine
from app.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from app.middleware.rate_limit import RateLimitMiddleware
from app.routes import (
    auth,
    email,
    farms,
    invitations,
    livestock,
    preferences,
    rainfall,
    tasks,
    weather,
    ws,
)

logger = logging.getLogger("nimbo")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Verify the database connection
      3. Connect to Redis (pub/sub channels, preferences, rate limits)

    Shutdown:
      1. Close Redis connection pool
      2. Dispose SQLAlchemy engine
    """
    configure_structured_logging()
    settings = get_settings()
    logger.info(
        "Nimbo starting",
        extra={
            "log_level": settings.log_level,
            "weather_configured": bool(settings.openweather_api_key),
            "email_configured": bool(settings.resend_api_key and settings.resend_from),
        },
    )

    redis: Redis | None = None
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))

        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        await redis.ping()
        app.state.redis = redis
    except Exception as exc:
        logger.exception("startup failure", extra={"error": str(exc)})
        raise

    yield

    logger.info("Nimbo shutting down")
    if redis is not None:
        await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="Nimbo API",
    description=(
        "Farm management API: shared farms with owner/editor/viewer roles, "
        "invitations, rainfall records with spreadsheet import, sheep registry, "
        "tasks, weather and live updates."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)


# ── Health check ────────────────────────────────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Basic health check; verifies the API process is alive."""
    return {
        "status": "ok",
        "service": "nimbo",
        "version": "0.1.0",
    }


# ── Router registration ────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/v1")
app.include_router(farms.router, prefix="/api/v1")
app.include_router(invitations.router, prefix="/api/v1")
app.include_router(rainfall.router, prefix="/api/v1")
app.include_router(livestock.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(weather.router, prefix="/api/v1")
app.include_router(preferences.router, prefix="/api/v1")
app.include_router(email.router, prefix="/api/v1")
app.include_router(ws.router)
