"""Auth0 access-token verification."""

import logging
from functools import lru_cache

import jwt
from pydantic import BaseModel

from app.config import get_settings

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256"]


class Auth0TokenError(Exception):
    """Raised when a bearer token cannot be verified."""


class Auth0Claims(BaseModel):
    """Verified claims we care about."""

    sub: str  # Auth0 user id, e.g. "auth0|abc123"
    email: str | None = None
    name: str | None = None


def _issuer(domain: str) -> str:
    return f"https://{domain}/"


@lru_cache
def _get_jwks_client(domain: str) -> jwt.PyJWKClient:
    """JWKS client per tenant; keys are cached by PyJWT."""
    return jwt.PyJWKClient(f"https://{domain}/.well-known/jwks.json")


def get_jwks_client() -> jwt.PyJWKClient:
    """Get the JWKS client for the configured tenant."""
    settings = get_settings()
    if not settings.auth0_domain:
        raise Auth0TokenError("Auth0 is not configured")
    return _get_jwks_client(settings.auth0_domain)


def verify_auth0_token(token: str) -> Auth0Claims:
    """Verify an Auth0 RS256 access token.

    Args:
        token: Raw bearer token

    Returns:
        Verified claims

    Raises:
        Auth0TokenError: If the token is malformed, expired, or not ours
    """
    settings = get_settings()

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=ALGORITHMS,
            audience=settings.auth0_audience,
            issuer=_issuer(settings.auth0_domain),
        )
    except jwt.ExpiredSignatureError as e:
        raise Auth0TokenError("Token expired") from e
    except jwt.PyJWKClientError as e:
        logger.warning(f"Could not resolve Auth0 signing key: {e}")
        raise Auth0TokenError("Unknown signing key") from e
    except jwt.InvalidTokenError as e:
        raise Auth0TokenError(f"Invalid token: {e}") from e

    if not payload.get("sub"):
        raise Auth0TokenError("Token has no subject")

    return Auth0Claims(
        sub=payload["sub"],
        email=payload.get("email"),
        name=payload.get("name"),
    )
