"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from app.api.v1 import billing, businesses, conversations, locations, webhooks

router = APIRouter()

# Include all sub-routers
router.include_router(webhooks.router)  # Twilio voice/SMS webhooks
router.include_router(businesses.router)
router.include_router(locations.router)
router.include_router(conversations.router)
router.include_router(billing.router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "message": "TextBack API is running"}
