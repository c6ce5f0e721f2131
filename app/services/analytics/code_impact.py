"""
Code impact and churn analysis.

Churn is estimated, not measured: without per-file history, a later
commit on the same repository and UTC day that mostly deletes lines is
taken as rework of that day's earlier work.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime

from app.services.analytics.types import (
    ChurnGauge,
    CodeImpactMetrics,
    CommitCategories,
    CommitRecord,
)
from app.services.analytics.utils import (
    clamp,
    coefficient_of_variation,
    round_half_up,
    utc_day,
)

OPTIMAL_ADD_RATIO = 0.65


def categorize_commit(additions: int, deletions: int, files_changed: int) -> str:
    """Classify one commit by size and addition ratio. Size rules win over ratio rules."""
    total = additions + deletions
    ratio = additions / total if total > 0 else 0.5

    if total <= 10:
        return "maintenance"
    if total <= 50 and files_changed <= 3:
        return "fix"
    if ratio > 0.8:
        return "feature"
    if ratio < 0.3:
        return "cleanup"
    return "refactor"


def categorize_commits(commits: Sequence[CommitRecord]) -> CommitCategories:
    categories = CommitCategories()
    for commit in commits:
        category = categorize_commit(commit.additions, commit.deletions, commit.files_changed)
        setattr(categories, category, getattr(categories, category) + 1)
    return categories


def calculate_churn_rate(commits: Sequence[CommitRecord]) -> float:
    """Estimated churn percentage, scaled x2 and capped at 50."""
    if len(commits) < 2:
        return 0.0

    dated = sorted(
        (c for c in commits if c.authored_at is not None),
        key=lambda c: c.authored_at or datetime.min,
    )

    groups: dict[tuple[str, object], list[CommitRecord]] = defaultdict(list)
    for commit in dated:
        repo_key = str(commit.repository_id) if commit.repository_id else "default"
        groups[(repo_key, utc_day(commit.authored_at))].append(commit)  # type: ignore[arg-type]

    churn_commits = 0
    analyzed = 0
    for day_commits in groups.values():
        for commit in day_commits[1:]:
            total = commit.total_changes
            if total <= 0:
                continue
            if commit.deletions / total > 0.4 and commit.deletions > 10:
                churn_commits += 1
            analyzed += 1
        # The first commit of each group counts as productive
        analyzed += 1

    rate = churn_commits / analyzed * 100 if analyzed else 0.0
    return min(rate * 2, 50.0)


def calculate_churn_gauge(categories: CommitCategories, churn_rate: float) -> ChurnGauge:
    total = categories.total
    if total == 0:
        return ChurnGauge()
    return ChurnGauge(
        productive=round_half_up((categories.feature + categories.fix) / total * 100),
        refactoring=round_half_up((categories.refactor + categories.cleanup) / total * 100),
        churn=round_half_up(churn_rate),
    )


def calculate_impact_score(
    add_delete_ratio: float,
    consistency: float,
    categories: CommitCategories,
    churn_rate: float,
) -> float:
    """Weighted 0-100 score: features 40, ratio 20, consistency 20, low churn 20."""
    total = categories.total
    if total == 0:
        return 0.0

    feature_score = categories.feature / total * 40
    ratio_score = (1 - abs(add_delete_ratio - OPTIMAL_ADD_RATIO) * 2) * 20
    consistency_score = consistency / 100 * 20
    no_churn_score = (100 - churn_rate) / 100 * 20

    return clamp(feature_score + ratio_score + consistency_score + no_churn_score)


def _impact_insights(
    impact_score: float,
    churn_rate: float,
    add_delete_ratio: float,
    consistency: float,
    categories: CommitCategories,
) -> list[str]:
    insights: list[str] = []

    if impact_score >= 80:
        insights.append(
            "Excellent impact! Your code changes show high productivity with minimal churn."
        )
    elif impact_score >= 60:
        insights.append("Good code impact. Most changes are productive and purposeful.")
    elif impact_score < 40:
        insights.append(
            "Impact score could improve. Consider focusing on larger, purposeful changes."
        )

    if churn_rate > 30:
        insights.append("High churn detected. You might be revisiting recent changes frequently.")
    elif churn_rate < 10:
        insights.append("Low churn rate - your changes are stable and well-planned.")

    if add_delete_ratio > 0.8:
        insights.append("Heavy on additions. Consider periodic cleanup to manage technical debt.")
    elif add_delete_ratio < 0.4:
        insights.append("Heavy cleanup phase detected. Good for reducing tech debt!")

    if consistency < 40:
        insights.append(
            "Commit sizes vary widely. Consider breaking large changes into smaller commits."
        )

    total = categories.total
    if total > 0:
        if categories.feature / total * 100 > 50:
            insights.append(
                "Feature-focused development pattern - great for shipping new functionality!"
            )
        elif categories.refactor > categories.feature:
            insights.append("Refactoring focus - improving code quality is valuable!")

    return insights[:4]


def analyze_code_impact(commits: Sequence[CommitRecord]) -> CodeImpactMetrics:
    if not commits:
        return CodeImpactMetrics(insights=["No commits to analyze"])

    total_additions = sum(c.additions for c in commits)
    total_deletions = sum(c.deletions for c in commits)
    total_changes = total_additions + total_deletions
    add_delete_ratio = total_additions / total_changes if total_changes > 0 else 0.5

    avg_net_change = round_half_up(sum(c.additions - c.deletions for c in commits) / len(commits))

    cv = coefficient_of_variation([float(c.total_changes) for c in commits])
    consistency = clamp(100 - cv * 40)

    categories = categorize_commits(commits)
    churn_rate = calculate_churn_rate(commits)
    impact_score = calculate_impact_score(add_delete_ratio, consistency, categories, churn_rate)

    return CodeImpactMetrics(
        impact_score=round_half_up(impact_score),
        churn_rate=round_half_up(churn_rate),
        productive_rate=round_half_up(100 - churn_rate),
        churn_gauge=calculate_churn_gauge(categories, churn_rate),
        commit_size_consistency=round_half_up(consistency),
        avg_net_change=avg_net_change,
        add_delete_ratio=round_half_up(add_delete_ratio, 2),
        commit_categories=categories,
        insights=_impact_insights(
            impact_score, churn_rate, add_delete_ratio, consistency, categories
        ),
    )


def get_impact_rating(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    if score >= 20:
        return "Needs Work"
    return "Low Impact"


def get_churn_severity(rate: float) -> dict[str, str]:
    if rate < 10:
        return {"label": "Minimal", "description": "Very stable code changes"}
    if rate < 20:
        return {"label": "Low", "description": "Normal rework levels"}
    if rate < 35:
        return {"label": "Moderate", "description": "Some code churn detected"}
    return {"label": "High", "description": "Significant rework"}
