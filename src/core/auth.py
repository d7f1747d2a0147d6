"""Authentication module for Auth0 JWT validation."""
import logging

import httpx
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from core.config import Settings, get_settings
from services.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.auth0_jwks_url not in _jwks_clients:
        _jwks_clients[settings.auth0_jwks_url] = PyJWKClient(
            settings.auth0_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.auth0_jwks_url]


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT token from Auth0.

    Raises:
        UnauthenticatedError: If token is invalid, expired, or has wrong audience/issuer,
            or if the signing keys cannot be fetched.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )

    except jwt.ExpiredSignatureError as e:
        raise UnauthenticatedError("Token has expired") from e
    except jwt.InvalidAudienceError as e:
        raise UnauthenticatedError("Invalid audience") from e
    except jwt.InvalidIssuerError as e:
        raise UnauthenticatedError("Invalid issuer") from e
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise UnauthenticatedError("Invalid token") from e
    except httpx.HTTPError as e:
        logger.error("Failed to fetch JWKS from Auth0: %s", e, exc_info=True)
        raise UnauthenticatedError("Could not validate credentials") from e


def resolve_user_id(
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str:
    """
    Resolve the caller's user id from a bearer token.

    In DEV_MODE authentication is bypassed and the configured development
    user id is returned.

    Raises:
        UnauthenticatedError: If no token was sent or it is invalid.
    """
    if settings.dev_mode:
        return settings.dev_user_id

    if credentials is None:
        raise UnauthenticatedError("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthenticatedError("Invalid token: missing user ID")
    return user_id


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency returning the authenticated caller's user id (the token's sub claim)."""
    return resolve_user_id(credentials, settings)
