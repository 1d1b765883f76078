"""
Call Signaling Backend - Main Application

This is the entry point for the FastAPI application.
It handles:
- REST API endpoints (auth, contacts, calls)
- WebSocket signaling channel (/ws/call)
- Startup/shutdown of the signal hub and call timeout timers
"""
from contextlib import asynccontextmanager
import logging
from datetime import datetime, UTC

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router as api_router
from app.api.websocket import router as ws_router
from app.config.redis import get_redis, close_redis
from app.config.settings import settings
from app.models.database import init_db
from app.services.call import call_service
from app.services.connection import signal_hub
from app.services.metrics import start_metrics_server

# Configure logging
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # === STARTUP ===
    logger.info("🚀 Starting Call Signaling Backend...")

    await init_db()
    logger.info("✅ Database tables created")

    await get_redis()
    logger.info("✅ Redis connected")

    signal_hub.start()
    logger.info("✅ Signal hub started")

    if settings.METRICS_ENABLED:
        start_metrics_server(settings.METRICS_PORT)
        logger.info(f"✅ Metrics exposed on :{settings.METRICS_PORT}")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    await call_service.supervisor.shutdown()
    await signal_hub.stop()
    await close_redis()


app = FastAPI(
    title="Call Signaling Backend",
    description="One-to-one call signaling hub and call state machine",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST API routes
app.include_router(api_router, prefix="/api")

# Include WebSocket routes
app.include_router(ws_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Call Signaling Backend",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "hub_running": signal_hub.is_running,
        "total_connections": signal_hub.connection_count,
    }
