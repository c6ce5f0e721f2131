from app.models.analytics_snapshot import AnalyticsSnapshot
from app.models.commit import Commit
from app.models.repository import Repository, RepositoryBase
from app.models.sync_job import SyncJob, SyncStatus
from app.models.user import User
from app.models.user_preferences import UserPreferences, UserPreferencesUpdate

__all__ = [
    "AnalyticsSnapshot",
    "Commit",
    "Repository",
    "RepositoryBase",
    "SyncJob",
    "SyncStatus",
    "User",
    "UserPreferences",
    "UserPreferencesUpdate",
]
