"""Data types for sync runs."""

import uuid as uuid_pkg
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SyncPhase(str, Enum):
    INIT = "init"
    REPOSITORIES = "repositories"
    COMMITS = "commits"
    STATS = "stats"
    ANALYTICS = "analytics"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class SyncOptions:
    """Caller-controlled knobs for one sync run.

    Repository filters left as None fall back to the user's stored
    preferences.
    """

    full_sync: bool = False
    include_forks: bool | None = None
    include_archived: bool | None = None
    include_org_repos: bool | None = None
    max_commits_per_repo: int | None = None
    fetch_commit_stats: bool = True


@dataclass
class SyncProgress:
    phase: SyncPhase
    percentage: float
    message: str
    current_repo: str | None = None
    repos_processed: int = 0
    total_repos: int = 0
    commits_processed: int = 0
    total_commits: int = 0
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {**asdict(self), "phase": self.phase.value}


@dataclass
class BatchInsertResult:
    inserted: int = 0
    skipped: int = 0
    backfilled: int = 0


@dataclass
class PipelineMetrics:
    validated: int = 0
    failed: int = 0
    enriched: int = 0
    inserted: int = 0
    skipped: int = 0
    backfilled: int = 0


@dataclass
class RepositoryOutcome:
    """What happened to one repository. `error` is set when it failed."""

    full_name: str
    inserted: int = 0
    skipped: int = 0
    dropped_invalid: int = 0
    stats_fetched: int = 0
    stats_backfilled: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class SyncResult:
    success: bool
    job_id: uuid_pkg.UUID | None
    repositories_processed: int
    commits_inserted: int
    commits_skipped: int
    errors: int
    duration_ms: int
    metrics: dict[str, Any] = field(default_factory=dict)
    outcomes: list[RepositoryOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls,
        job_id: uuid_pkg.UUID | None,
        outcomes: list[RepositoryOutcome],
        duration_ms: int,
        metrics: dict[str, Any] | None = None,
    ) -> "SyncResult":
        """Fold per-repository outcomes into the job summary."""
        failed = [o for o in outcomes if not o.succeeded]
        return cls(
            success=True,
            job_id=job_id,
            repositories_processed=len(outcomes),
            commits_inserted=sum(o.inserted for o in outcomes),
            commits_skipped=sum(o.skipped for o in outcomes),
            errors=len(failed),
            duration_ms=duration_ms,
            metrics=metrics or {},
            outcomes=outcomes,
            warnings=[f"{o.full_name}: {o.error}" for o in failed],
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["job_id"] = str(self.job_id) if self.job_id else None
        return data
