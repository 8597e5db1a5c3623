"""Health check and configuration status endpoints."""

import time
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Dict, Any

from .. import __version__
from ..database import get_db
from ..config import settings
from ..services.evidence import EvidenceConfig

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
        "news_provider": settings.news_provider
    }


@router.get("/database")
async def database_health(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Database connectivity check with round-trip latency."""
    started = time.monotonic()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }

    return {
        "status": "healthy",
        "database": "connected",
        "latency_ms": round((time.monotonic() - started) * 1000, 2),
        "timestamp": datetime.now().isoformat()
    }


@router.get("/config")
async def config_status() -> Dict[str, Any]:
    """Non-secret view of the active pipeline configuration."""
    evidence = EvidenceConfig.from_settings(settings)
    return {
        "news_provider": settings.news_provider,
        "news_provider_configured": bool(
            settings.polygon_api_key if settings.news_provider == "polygon"
            else settings.alpaca_api_key and settings.alpaca_secret_key
        ),
        "llm_configured": bool(settings.openai_api_key),
        "step_models": dict(settings.step_models),
        "live_prices_available": bool(settings.alpaca_api_key and settings.alpaca_secret_key),
        "evidence": {
            "days": evidence.days,
            "per_symbol_limit": evidence.per_symbol_limit,
            "concurrency": evidence.concurrency,
            "timeout_seconds": evidence.timeout_seconds
        },
        "diff": {
            "threshold": settings.diff_threshold,
            "top_n": settings.diff_top_n
        }
    }
