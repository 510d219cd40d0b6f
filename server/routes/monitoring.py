"""
Monitoring and health check API routes
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from config import config, get_logger
from database.db_postgres import Database
from server.dependencies import get_db
from server.metrics import get_metrics_text
from vendors.session_manager_async import AsyncSessionManager

logger = get_logger(__name__)

VERSION = "1.0.0"


router = APIRouter()


@router.get("/")
async def root():
    """API status and info"""
    return {
        "service": "dinepoll API",
        "status": "running",
        "version": VERSION,
        "description": "Ranked-choice restaurant polls for groups deciding where to eat",
        "endpoints": {
            "create_poll": "POST /api/create-poll - Create a poll over the restaurant catalog",
            "poll": "GET /api/poll/{poll_id} - Poll details and restaurants",
            "results": "GET /api/poll/{poll_id}/results - Ranked results (Borda count)",
            "vote": "POST /api/vote/{poll_id} - Submit a full ranking",
            "health": "GET /api/health - Health check with detailed status",
            "metrics": "GET /metrics - Prometheus metrics",
            "admin": {
                "populate": "POST /api/admin/populate - Fetch restaurants for a location and create a poll",
                "polls": "GET /api/admin/polls - List polls",
                "close_poll": "POST /api/admin/polls/{poll_id}/close - Stop accepting ballots",
            },
        },
        "scoring": "Rank r of N restaurants earns N - r + 1 points; ties keep poll order",
        "rate_limiting": f"{config.VOTE_RATE_LIMIT} ballots per {config.VOTE_RATE_WINDOW} seconds per IP",
    }


@router.get("/api/health")
async def health_check(db: Database = Depends(get_db)):
    """Health check endpoint"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": VERSION,
        "checks": {},
    }

    try:
        stats = await db.get_stats()
        health_status["checks"]["database"] = {"status": "healthy", **stats}
    except Exception as e:
        logger.error("health check database failure", error=str(e))
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}

    health_status["checks"]["places"] = {
        "status": "configured" if config.get_places_api_key() else "disabled",
    }
    health_status["checks"]["http_sessions"] = AsyncSessionManager.get_stats()

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health_status)


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus scrape endpoint"""
    return Response(content=get_metrics_text(), media_type="text/plain; version=0.0.4; charset=utf-8")
