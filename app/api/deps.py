"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from twilio.request_validator import RequestValidator

from app.ai.client import OpenAIClient, get_openai_client
from app.config import get_settings
from app.database import get_db
from app.models import Business
from app.services import business as business_service
from app.services.dedupe import EventDeduplicator, event_deduplicator
from app.services.events import EventRecorder, get_event_recorder
from app.services.messaging import SmsClient, build_sms_client
from app.services.pipeline import TextBackPipeline
from app.utils.auth0 import Auth0Claims, Auth0TokenError, verify_auth0_token

__all__ = [
    "get_db",
    "AsyncSession",
    "verify_twilio_signature",
    "get_sms_client",
    "get_openai",
    "get_deduplicator",
    "get_event_recorder",
    "get_pipeline",
    "get_current_user",
    "get_current_business",
    "PaginationParams",
]

logger = logging.getLogger(__name__)
settings = get_settings()

# Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


# Twilio webhook signature
async def verify_twilio_signature(request: Request) -> None:
    """Reject webhooks that Twilio did not sign.

    Twilio signs the public URL it called (scheme, host, path and query)
    plus the POSTed form fields, so the URL is rebuilt from app_base_url
    rather than trusted from proxy headers.
    """
    if not settings.should_validate_twilio_signature:
        return

    signature = request.headers.get("X-Twilio-Signature")
    if not signature:
        logger.warning(f"Missing Twilio signature on {request.url.path}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Missing Twilio signature")

    url = f"{settings.app_base_url.rstrip('/')}{request.url.path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"

    form = await request.form()
    validator = RequestValidator(settings.twilio_auth_token)
    if not validator.validate(url, dict(form), signature):
        logger.warning(f"Invalid Twilio signature on {request.url.path}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid Twilio signature")


# External clients
async def get_sms_client() -> AsyncGenerator[SmsClient, None]:
    """SMS client for one request."""
    client = build_sms_client()
    try:
        yield client
    finally:
        await client.close()


def get_openai() -> OpenAIClient:
    return get_openai_client()


def get_deduplicator() -> EventDeduplicator:
    return event_deduplicator


async def get_pipeline(
    db: Annotated[AsyncSession, Depends(get_db)],
    sms_client: Annotated[SmsClient, Depends(get_sms_client)],
    openai_client: Annotated[OpenAIClient, Depends(get_openai)],
    events: Annotated[EventRecorder, Depends(get_event_recorder)],
    deduplicator: Annotated[EventDeduplicator, Depends(get_deduplicator)],
) -> TextBackPipeline:
    """Decision pipeline wired to this request's session."""
    return TextBackPipeline(
        db=db,
        sms_client=sms_client,
        openai_client=openai_client,
        events=events,
        deduplicator=deduplicator,
    )


# Auth dependency - Auth0 user from the bearer token
async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Auth0Claims:
    """Verify the Auth0 access token.

    Raises 401 if not authenticated or token is invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return verify_auth0_token(credentials.credentials)
    except Auth0TokenError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_business(
    user: Annotated[Auth0Claims, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Business:
    """Business owned by the authenticated user, or 404."""
    business = await business_service.get_business_by_auth0_user(db, user.sub)
    if not business:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No business set up for this account",
        )
    return business


# Pagination parameters
class PaginationParams:
    """Pagination query parameters."""

    def __init__(
        self,
        skip: Annotated[int, Query(ge=0, description="Number of records to skip")] = 0,
        limit: Annotated[
            int, Query(ge=1, le=100, description="Maximum number of records to return")
        ] = 50,
    ):
        self.skip = skip
        self.limit = limit
