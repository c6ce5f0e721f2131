from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.domain.preferences_operations import preferences_ops
from app.models.user import User
from app.models.user_preferences import UserPreferences, UserPreferencesUpdate

router = APIRouter(prefix="/users/me/preferences", tags=["preferences"])


class PreferencesRead(BaseModel):
    """User preferences response. The token itself is never returned."""

    model_config = ConfigDict(from_attributes=True)

    github_token_set: bool
    include_forks: bool
    include_archived: bool
    include_org_repos: bool


class GitHubTokenTest(BaseModel):
    token: str


class GitHubTokenTestResult(BaseModel):
    valid: bool
    username: str | None = None
    name: str | None = None
    scopes: list[str] | None = None
    has_repo_scope: bool | None = None
    scope_warning: str | None = None
    error: str | None = None


def prefs_to_response(prefs: UserPreferences) -> PreferencesRead:
    return PreferencesRead(
        github_token_set=bool(prefs.github_token),
        include_forks=prefs.include_forks,
        include_archived=prefs.include_archived,
        include_org_repos=prefs.include_org_repos,
    )


@router.get("", response_model=PreferencesRead)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PreferencesRead:
    """
    Get the current user's preferences.

    Creates default preferences if none exist.
    """
    prefs = await preferences_ops.get_or_create(db, current_user.id)
    return prefs_to_response(prefs)


@router.patch("", response_model=PreferencesRead)
async def update_preferences(
    data: UserPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PreferencesRead:
    """Update sync defaults or link/unlink the GitHub token (empty string unlinks)."""
    prefs = await preferences_ops.get_or_create(db, current_user.id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data:
        prefs = await preferences_ops.update(db, prefs, update_data)

    return prefs_to_response(prefs)


@router.post("/validate-github-token", response_model=GitHubTokenTestResult)
async def validate_github_token(
    data: GitHubTokenTest,
    current_user: User = Depends(get_current_user),
) -> GitHubTokenTestResult:
    """
    Check a GitHub Personal Access Token without saving it.

    Returns validation status and the GitHub username if valid.
    """
    result = await preferences_ops.validate_github_token(data.token)
    return GitHubTokenTestResult(**result)
