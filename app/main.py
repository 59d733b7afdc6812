"""FastAPI application entry point for TextBack."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app.api.v1.router import router as api_v1_router
from app.config import get_settings
from app.database import engine
from app.services.events import event_recorder
from app.utils.logger import configure_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - startup and shutdown events."""
    # Startup
    configure_logging()
    logger.info("Starting TextBack API...")
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Database: {settings.async_database_url.split('@')[-1]}")  # Hide credentials
    if not settings.should_validate_twilio_signature:
        logger.warning("Twilio signature validation is OFF")

    # Test database connection
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✓ Database connection successful")
    except Exception as e:
        logger.error(f"✗ Database connection failed: {e}")

    yield

    # Shutdown
    logger.info("Shutting down TextBack API...")
    await event_recorder.drain()
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="TextBack API",
    description="Missed-call text-back and SMS auto-replies for small businesses",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
allowed_origins = [
    settings.frontend_url,  # Dashboard
    "http://localhost:3000",  # Local development
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if not settings.is_development else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "TextBack API",
        "version": "0.1.0",
        "description": "Missed-call text-back for small businesses",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Global health check."""
    return {"status": "ok"}
