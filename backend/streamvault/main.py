"""
StreamVault API application

Builds the ASGI app:
1. Creates the FastAPI app instance and its runtime state
2. Configures sessions, CORS and the access log
3. Registers route handlers and exception handlers
4. Sets up startup/shutdown lifecycle events

Run with:
    uvicorn streamvault.main:app --port 5002 --workers 1

Keep a single worker: the stream tracker and rate-limit counters live in
process memory and are not shared between workers.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from streamvault.config import settings
from streamvault.database import init_db
from streamvault.exceptions import register_exception_handlers
from streamvault.logging_config import setup_logging
from streamvault.middleware import RequestLoggingMiddleware
from streamvault.routers import auth, folders, stats, stream, videos
from streamvault.services.rate_limit import RateLimits
from streamvault.services.storage import get_storage_service
from streamvault.services.stream_tracker import StreamTracker

# Import models so SQLAlchemy registers them with Base.metadata
# before init_db() calls create_all().
import streamvault.models  # noqa: F401

logger = logging.getLogger(__name__)

SERVICE_NAME = "StreamVault"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting %s API...", SERVICE_NAME)
    if settings.WORKERS > 1:
        logger.warning(
            "WORKERS=%d: stream analytics and rate limits are per worker",
            settings.WORKERS,
        )
    await init_db()
    get_storage_service()  # creates the upload directory
    logger.info("Database tables created/verified, uploads in %s", settings.UPLOAD_DIR)

    yield

    # --- Shutdown ---
    app.state.streams.reset()
    logger.info("Shutting down...")


app = FastAPI(
    title="StreamVault API",
    description="Upload, organize and stream a private video library",
    version=VERSION,
    lifespan=lifespan,
)

# --- Runtime state (process-local) ---
app.state.streams = StreamTracker(concurrent_limit=settings.STREAM_CONCURRENT_LIMIT)
app.state.rate_limits = RateLimits.from_settings(settings)

# --- Middleware (last added runs first) ---
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
    https_only=settings.APP_ENV == "production",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(folders.router)
app.include_router(videos.router)
app.include_router(stream.router)
app.include_router(stats.router)


# --- Health Check Endpoints ---

@app.get("/health", tags=["health"])
async def health_check():
    """Health check with a database round trip."""
    from sqlalchemy import text

    from streamvault.database import AsyncSessionLocal

    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": settings.APP_ENV,
        "active_streams": app.state.streams.active_count,
    }


# --- Dashboard bundle ---
# Mounted last so it never shadows an API route.
if settings.STATIC_DIR and Path(settings.STATIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="dashboard")
else:
    @app.get("/", tags=["health"])
    async def root():
        """Service banner."""
        return {
            "service": SERVICE_NAME,
            "status": "running",
            "version": VERSION,
        }
