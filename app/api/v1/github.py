"""
GitHub integration endpoints.
"""

import logging
import time
import uuid as uuid_pkg
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.exceptions import TooManyRequestsError
from app.domain.preferences_operations import preferences_ops
from app.models.user import User
from app.services.github import GitHubAPIError, GitHubReadOperations
from app.services.github.exceptions import CredentialError, RateLimitError

router = APIRouter(prefix="/github", tags=["github"])
logger = logging.getLogger(__name__)


class RateLimitResponse(BaseModel):
    remaining: int | None
    limit: int | None
    reset: int | None
    used: int | None


async def get_github_token(db: AsyncSession, user_id: uuid_pkg.UUID) -> str:
    """Decrypted GitHub token for the user, raising 400 if none is linked."""
    prefs = await preferences_ops.get_by_user_id(db, user_id)
    token = preferences_ops.get_decrypted_token(prefs)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="GitHub token not configured. Add your token in your preferences.",
        )
    return token


def github_error_to_http(e: GitHubAPIError) -> HTTPException:
    """Map a client error onto the response the caller should see."""
    if isinstance(e, RateLimitError):
        return TooManyRequestsError(e.message, retry_after=e.retry_after)
    if isinstance(e, CredentialError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="GitHub token is invalid or expired. Update it in your preferences.",
        )
    if e.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    detail = e.message
    if e.rate_limit_reset:
        minutes = max(0, e.rate_limit_reset - int(time.time())) // 60
        detail = f"{e.message}. Rate limit resets in {minutes} minutes."
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


@router.get("/rate-limit", response_model=RateLimitResponse)
async def get_rate_limit(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RateLimitResponse:
    """Current GitHub request budget for the user's token."""
    token = await get_github_token(db, current_user.id)
    try:
        snapshot = await GitHubReadOperations(token).get_rate_limit_state()
    except GitHubAPIError as e:
        raise github_error_to_http(e) from None
    return RateLimitResponse(**asdict(snapshot))
