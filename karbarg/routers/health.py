"""Health check endpoint."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from karbarg.database import engine
from karbarg.config import get_settings
from karbarg.version import APP_VERSION
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "error", "detail": "Database connection failed"},
        )

    return {"status": "ok", "database": "connected"}


@router.get("/")
async def root():
    """Version banner."""
    settings = get_settings()
    return {
        "message": "Karbarg Q&A API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
