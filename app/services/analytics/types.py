"""Inputs and results shared by the analytics calculators."""

import uuid as uuid_pkg
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class CommitRecord:
    """The slice of a stored commit the calculators read."""

    sha: str
    authored_at: datetime | None
    message: str = ""
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    repository_id: uuid_pkg.UUID | str | None = None

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @classmethod
    def from_model(cls, commit: Any) -> "CommitRecord":
        return cls(
            sha=commit.sha,
            authored_at=commit.authored_at,
            message=commit.message or "",
            additions=commit.additions or 0,
            deletions=commit.deletions or 0,
            files_changed=commit.files_changed or 0,
            repository_id=commit.repository_id,
        )


@dataclass
class RepositoryRecord:
    id: uuid_pkg.UUID | str
    name: str
    full_name: str
    language: str | None = None
    stars_count: int = 0
    forks_count: int = 0

    @classmethod
    def from_model(cls, repo: Any) -> "RepositoryRecord":
        return cls(
            id=repo.id,
            name=repo.name,
            full_name=repo.full_name,
            language=repo.language,
            stars_count=repo.stars_count or 0,
            forks_count=repo.forks_count or 0,
        )


@dataclass
class CommitCategories:
    feature: int = 0
    refactor: int = 0
    fix: int = 0
    cleanup: int = 0
    maintenance: int = 0

    @property
    def total(self) -> int:
        return self.feature + self.refactor + self.fix + self.cleanup + self.maintenance


@dataclass
class ChurnGauge:
    productive: int = 0
    refactoring: int = 0
    churn: int = 0


@dataclass
class CodeImpactMetrics:
    impact_score: int = 0
    churn_rate: int = 0
    productive_rate: int = 0
    churn_gauge: ChurnGauge = field(default_factory=ChurnGauge)
    commit_size_consistency: int = 0
    avg_net_change: int = 0
    add_delete_ratio: float = 0.5
    commit_categories: CommitCategories = field(default_factory=CommitCategories)
    insights: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PrefixCount:
    prefix: str
    count: int
    percentage: int


@dataclass
class CommitQualityMetrics:
    total_analyzed: int = 0
    average_message_length: int = 0
    conventional_commit_score: int = 0
    ticket_reference_score: int = 0
    body_text_score: int = 0
    subject_line_score: int = 0
    common_prefixes: list[PrefixCount] = field(default_factory=list)
    quality_grade: str = "F"
    insights: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QualityTrend:
    direction: str
    previous_grade: str
    change_percent: int


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    description: str
    criteria: str
    category: str
    rarity: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PersonaResult:
    primary: Persona
    secondary: Persona | None = None
    confidence: int = 50

    def as_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary.as_dict(),
            "secondary": self.secondary.as_dict() if self.secondary else None,
            "confidence": self.confidence,
        }
