"""JWT validation and user authentication dependencies.

Tokens are ES256 JWTs issued by the auth provider and verified against its
JWKS. The user row is mirrored locally on first sight.
"""

import logging
import time
import uuid as uuid_pkg
from typing import Annotated, Any

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from jose.backends import ECKey
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_db
from app.domain.user_operations import user_ops
from app.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

JWT_AUDIENCE = "authenticated"
JWT_ALGORITHM = "ES256"

# JWKS cache with TTL to pick up key rotation
_jwks_cache: dict[str, Any] = {}
_jwks_cache_timestamp: float = 0.0
_JWKS_CACHE_TTL_SECONDS: float = 3600.0


async def _fetch_jwks() -> dict[str, Any]:
    global _jwks_cache_timestamp
    async with httpx.AsyncClient() as client:
        response = await client.get(settings.supabase_jwks_url)
        response.raise_for_status()
        jwks = response.json()
    _jwks_cache.clear()
    _jwks_cache.update(jwks)
    _jwks_cache_timestamp = time.monotonic()
    return jwks


async def get_jwks(force_refresh: bool = False) -> dict[str, Any]:
    cache_age = time.monotonic() - _jwks_cache_timestamp
    if _jwks_cache and not force_refresh and cache_age < _JWKS_CACHE_TTL_SECONDS:
        return _jwks_cache
    return await _fetch_jwks()


def get_signing_key(jwks: dict[str, Any], token: str) -> ECKey:
    """Key from the JWKS whose kid matches the token header."""
    kid = jwt.get_unverified_header(token).get("kid")
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return ECKey(key, algorithm=JWT_ALGORITHM)
    raise ValueError("Unable to find matching key in JWKS")


async def decode_token(token: str, force_refresh: bool = False) -> dict[str, Any]:
    """Verify the token and return its claims.

    Raises:
        JWTError / ValueError: invalid token or unknown key
        httpx.HTTPError: JWKS could not be fetched
    """
    jwks = await get_jwks(force_refresh=force_refresh)
    claims = jwt.decode(
        token,
        get_signing_key(jwks, token),
        algorithms=[JWT_ALGORITHM],
        audience=JWT_AUDIENCE,
    )
    if not claims.get("sub"):
        raise ValueError("Token has no subject")
    return claims


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Validate the bearer JWT and return the current user.

    Creates the user record on the first API call.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    token = credentials.credentials
    try:
        claims = await decode_token(token)
    except (JWTError, ValueError) as first_error:
        # Key rotation may have occurred: refresh the JWKS and retry once
        logger.info("JWT validation failed with cached JWKS, forcing refresh")
        try:
            claims = await decode_token(token, force_refresh=True)
        except (JWTError, ValueError, httpx.HTTPError):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
            ) from first_error
    except httpx.HTTPError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    try:
        user_id = uuid_pkg.UUID(claims["sub"])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        ) from None

    return await user_ops.get_or_create_from_claims(db, user_id, claims)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
