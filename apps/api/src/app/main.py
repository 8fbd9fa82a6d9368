"""
ID Card Request API - Main Application Entry Point

Builds the FastAPI app: lifespan (logging, Redis, database, first
administrator), CORS, error handlers, the /api routers and the liveness
and readiness probes.
"""

import logging
from collections.abc import Awaitable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api import api_router
from app.core.config import settings
from app.core.database import async_session_maker, close_db, init_db
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import setup_logging
from app.core.redis import close_redis, init_redis, redis_health
from app.modules.admins.service import ensure_initial_admin

logger = logging.getLogger(__name__)


async def bootstrap_initial_admin() -> None:
    """Create the configured initial administrator if it does not exist."""
    if not settings.initial_admin_configured:
        logger.info("ADMIN_USERNAME/ADMIN_EMAIL/ADMIN_PASSWORD not set - skipping admin bootstrap")
        return

    async with async_session_maker() as session:
        await ensure_initial_admin(
            session,
            username=settings.admin_username,
            email=settings.admin_email,
            password=settings.admin_password.get_secret_value(),
        )


async def _startup_step(name: str, step: Awaitable[None]) -> None:
    """Run one startup step. Outside production a failure is logged and skipped."""
    try:
        await step
    except Exception as e:
        logger.error(f"[FAIL] {name}: {e}")
        if settings.is_production:
            raise
        return
    logger.info(f"[OK] {name}")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Startup: logging, Redis (optional outside production), database,
    initial administrator. Shutdown: close Redis and the engine.
    """
    setup_logging()
    logger.info(f"Starting {settings.app_name} in {settings.python_env} mode...")

    if await init_redis():
        logger.info("[OK] Redis connected")
    elif settings.is_production:
        raise RuntimeError("Redis is required in production")
    else:
        logger.warning("[FAIL] Redis unavailable, rate limits use process memory")

    await _startup_step("Database", init_db())
    await _startup_step("Initial admin", bootstrap_initial_admin())

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title=settings.app_name,
    description="Admin backend for university ID card requests",
    version=settings.app_version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service banner."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness probe; touches nothing external."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: the database must answer."""
    async with async_session_maker() as session:
        await session.execute(text("SELECT 1"))
    return {"status": "ready", "redis": await redis_health()}
