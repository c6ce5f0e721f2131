"""
Sync engine package.

- pipeline.py: validation, statistics sampling, enrichment, batch storage
- orchestrator.py: one end-to-end sync per user and its SyncJob
- registry.py: one running sync per user, with cancellation
"""

from app.services.sync.exceptions import (
    CommitValidationError,
    CredentialMissingError,
    StorageError,
    SyncAlreadyRunningError,
    SyncError,
)
from app.services.sync.orchestrator import (
    SyncOrchestrator,
    run_sync_for_user,
    run_sync_in_new_session,
)
from app.services.sync.pipeline import CommitDataPipeline
from app.services.sync.registry import SyncRunRegistry, sync_registry
from app.services.sync.types import (
    BatchInsertResult,
    RepositoryOutcome,
    SyncOptions,
    SyncPhase,
    SyncProgress,
    SyncResult,
)

__all__ = [
    "CommitDataPipeline",
    "SyncOrchestrator",
    "SyncRunRegistry",
    "run_sync_for_user",
    "run_sync_in_new_session",
    "sync_registry",
    "BatchInsertResult",
    "RepositoryOutcome",
    "SyncOptions",
    "SyncPhase",
    "SyncProgress",
    "SyncResult",
    "CommitValidationError",
    "CredentialMissingError",
    "StorageError",
    "SyncAlreadyRunningError",
    "SyncError",
]
