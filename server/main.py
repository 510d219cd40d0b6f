"""
DinePoll API Server

FastAPI application for ranked-choice restaurant polls.
Routes, repositories, and vendor clients are organized into focused modules.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import config, get_logger
from database.db_postgres import Database
from server.rate_limiter import SQLiteRateLimiter
from server.middleware.logging import log_requests
from server.middleware.metrics import metrics_middleware
from server.middleware.rate_limiting import rate_limit_middleware
from server.middleware.request_id import RequestIDMiddleware
from server.routes import admin, monitoring, polls, votes
from vendors.places import GooglePlacesClient
from vendors.session_manager_async import AsyncSessionManager

logger = get_logger(__name__)


# Lifespan context manager for database and vendor client initialization
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup the connection pool and places client"""
    db = await Database.create()
    await db.init_schema()
    logger.info("initialized PostgreSQL database with async connection pool")
    app.state.db = db

    if config.get_places_api_key():
        app.state.places = GooglePlacesClient()
    else:
        app.state.places = None
        logger.warning("no places API key configured, restaurant population disabled")

    yield

    try:
        await AsyncSessionManager.close_all()
        await db.close()
        logger.info("closed PostgreSQL connection pool")
    except Exception as e:
        # Don't crash on shutdown - log and continue
        logger.error("error during shutdown", error=str(e), exc_info=True)


app = FastAPI(title="dinepoll API", description="Ranked-choice restaurant polls", lifespan=lifespan)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

# Request ID middleware (must be early in stack for tracing)
app.add_middleware(RequestIDMiddleware)

config.ensure_data_dir()
rate_limiter = SQLiteRateLimiter(
    db_path=config.RATE_LIMIT_DB_PATH,
    requests_limit=config.VOTE_RATE_LIMIT,
    window_seconds=config.VOTE_RATE_WINDOW,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report body validation failures as 400 with the first message"""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return JSONResponse(status_code=400, content={"detail": message})


# Register middleware (execution order: metrics -> rate limiting -> logging)
# FastAPI middleware stack: last registered runs first, so register in reverse order
@app.middleware("http")
async def log_requests_middleware(request, call_next):
    return await log_requests(request, call_next)


@app.middleware("http")
async def rate_limit_middleware_wrapper(request, call_next):
    return await rate_limit_middleware(request, call_next, rate_limiter)


@app.middleware("http")
async def metrics_middleware_wrapper(request, call_next):
    return await metrics_middleware(request, call_next)


# Mount routers
app.include_router(monitoring.router)  # Root, health and metrics
app.include_router(polls.router)       # Poll creation, details and results
app.include_router(votes.router)       # Ballot submission
app.include_router(admin.router)       # Restaurant population and poll lifecycle


if __name__ == "__main__":
    import uvicorn
    import sys

    if not config.get_places_api_key():
        logger.warning("WARNING: No places API key configured. Restaurant population will be disabled.")
        logger.warning("Set GOOGLE_PLACES_API_KEY to enable it.")

    if not config.ADMIN_TOKEN:
        logger.warning("WARNING: No admin token configured. Admin endpoints will not work.")
        logger.warning("Set DINEPOLL_ADMIN_TOKEN to enable admin functionality.")

    logger.info("Starting dinepoll API server...")
    logger.info("configuration", config_summary=config.summary())

    if len(sys.argv) > 1 and sys.argv[1] == "--init-db":
        logger.info("Initializing database schema...")
        import asyncio

        async def init_db():
            db = await Database.create()
            try:
                await db.init_schema()
                stats = await db.get_stats()
                logger.info("Database initialized successfully", **stats)
            finally:
                await db.close()

        asyncio.run(init_db())
        sys.exit(0)

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        access_log=False,  # Custom middleware logs every request
    )
