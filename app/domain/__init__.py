from app.domain.analytics_snapshot_operations import analytics_snapshot_ops
from app.domain.commit_operations import commit_ops
from app.domain.preferences_operations import preferences_ops
from app.domain.repository_operations import repository_ops
from app.domain.sync_job_operations import sync_job_ops
from app.domain.user_operations import user_ops

__all__ = [
    "analytics_snapshot_ops",
    "commit_ops",
    "preferences_ops",
    "repository_ops",
    "sync_job_ops",
    "user_ops",
]
