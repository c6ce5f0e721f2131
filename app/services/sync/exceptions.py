"""Exceptions raised by the sync engine."""


class SyncError(Exception):
    """Base class for sync failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CredentialMissingError(SyncError):
    """The user has no linked GitHub token. No job is created."""

    def __init__(self, message: str = "GitHub token not configured"):
        super().__init__(message)


class SyncAlreadyRunningError(SyncError):
    """A sync for this user is already in flight."""

    def __init__(self, message: str = "A sync is already running for this user"):
        super().__init__(message)


class CommitValidationError(SyncError):
    """A fetched commit is malformed; the record is dropped."""

    def __init__(self, sha: str | None, errors: list[str]):
        self.sha = sha
        self.errors = errors
        label = sha[:7] if sha else "unknown"
        super().__init__(f"Invalid commit {label}: {', '.join(errors)}")


class StorageError(SyncError):
    """Writing commits failed. Aborts the current repository only."""
