from app.api.v1 import analytics, github, preferences, repositories, sync

__all__ = [
    "analytics",
    "github",
    "preferences",
    "repositories",
    "sync",
]
