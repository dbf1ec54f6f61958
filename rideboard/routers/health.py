"""Health check endpoints."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from rideboard.database import engine
from rideboard.utils import lock_client
from rideboard.config import get_settings
from rideboard.version import APP_VERSION
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "Database connection failed"},
        )

    locks_backend = await lock_client.check_backend()

    return {
        "status": "ok",
        "database": db_status,
        "locks": locks_backend,
    }


@router.get("/status")
async def service_status():
    """Version and environment information."""
    settings = get_settings()
    return {
        "version": APP_VERSION,
        "environment": settings.environment,
        "leaderboard_background_refresh": settings.leaderboard_background_refresh_enabled,
    }
