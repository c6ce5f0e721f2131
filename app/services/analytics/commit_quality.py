"""
Commit message quality scoring.

Merge commits are excluded before scoring. The grade is a weighted blend
of conventional-commit usage (40%), ticket references (30%), subject line
length (20%) and body usage (10%).
"""

import re
from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from app.services.analytics.types import (
    CommitQualityMetrics,
    CommitRecord,
    PrefixCount,
    QualityTrend,
)
from app.services.analytics.utils import round_half_up, to_utc

_TYPES = "feat|fix|docs|style|refactor|test|chore|perf|ci|build|revert"

CONVENTIONAL_RE = re.compile(rf"^({_TYPES})(\(.+\))?!?:\s", re.IGNORECASE)
CONVENTIONAL_SCOPE_RE = re.compile(rf"^({_TYPES})\(([^)]+)\)!?:", re.IGNORECASE)
CONVENTIONAL_SIMPLE_RE = re.compile(rf"^({_TYPES}):", re.IGNORECASE)

TICKET_PATTERNS = [
    re.compile(r"\b([A-Z]{2,10}-\d+)\b"),
    re.compile(r"\b#(\d{1,6})\b"),
    re.compile(r"\bGH-(\d{1,6})\b", re.IGNORECASE),
    re.compile(r"\bissues?/(\d+)\b", re.IGNORECASE),
    re.compile(r"\bfix(?:es|ed)?\s+#(\d+)\b", re.IGNORECASE),
    re.compile(r"\bclose[sd]?\s+#(\d+)\b", re.IGNORECASE),
    re.compile(r"\bresolve[sd]?\s+#(\d+)\b", re.IGNORECASE),
]

MERGE_PATTERNS = [
    re.compile(r"^Merge (pull request|branch|remote)", re.IGNORECASE),
    re.compile(r"^Merge '.+' into", re.IGNORECASE),
    re.compile(r"^Merged in .+", re.IGNORECASE),
    re.compile(r"^Automatic merge", re.IGNORECASE),
]

GRADE_VALUES = {"A": 5, "B": 4, "C": 3, "D": 2, "F": 1}

GRADE_DESCRIPTIONS = {
    "A": "Excellent",
    "B": "Good",
    "C": "Fair",
    "D": "Needs Work",
    "F": "Poor",
}


def _subject(message: str) -> str:
    return message.split("\n", 1)[0]


def is_conventional_commit(message: str) -> bool:
    return CONVENTIONAL_RE.match(_subject(message)) is not None


def get_conventional_prefix(message: str) -> str | None:
    """`type(scope)` or `type`, lower-cased type, or None."""
    subject = _subject(message)
    match = CONVENTIONAL_SCOPE_RE.match(subject)
    if match:
        return f"{match.group(1).lower()}({match.group(2)})"
    match = CONVENTIONAL_SIMPLE_RE.match(subject)
    if match:
        return match.group(1).lower()
    return None


def has_ticket_reference(message: str) -> bool:
    return any(pattern.search(message) for pattern in TICKET_PATTERNS)


def has_message_body(message: str) -> bool:
    return len([line for line in message.split("\n") if line.strip()]) > 1


def is_merge_commit(message: str) -> bool:
    return any(pattern.match(message) for pattern in MERGE_PATTERNS)


def calculate_grade(conventional: float, ticket: float, body: float, subject: float) -> str:
    weighted = conventional * 0.40 + ticket * 0.30 + subject * 0.20 + body * 0.10
    if weighted >= 85:
        return "A"
    if weighted >= 70:
        return "B"
    if weighted >= 55:
        return "C"
    if weighted >= 40:
        return "D"
    return "F"


def _quality_insights(
    conventional: int, ticket: int, body: int, subject: int, avg_length: int, grade: str
) -> list[str]:
    insights: list[str] = []

    if grade == "A":
        insights.append("Excellent commit discipline! Your messages are clear and consistent.")
    elif grade == "B":
        insights.append("Good commit quality! A few tweaks could make it even better.")

    if conventional < 30:
        insights.append(
            "Consider adopting conventional commits (feat:, fix:, docs:) for better "
            "changelog generation and team clarity."
        )
    elif conventional < 60:
        insights.append(
            "You're using conventional commits sometimes. "
            "Try to use them consistently for all commits."
        )

    if ticket < 20:
        insights.append(
            "Link commits to issues/tickets (JIRA-123, #456) for better traceability "
            "and project management."
        )
    elif ticket >= 70:
        insights.append("Great job linking commits to issues! This helps with project tracking.")

    if subject < 50:
        insights.append(
            "Keep commit subjects under 50-72 characters for better readability in git log."
        )

    if body < 20:
        insights.append(
            'Add commit body text for complex changes to explain the "why" behind your code.'
        )

    if avg_length < 15:
        insights.append(
            "Commit messages are quite short. More descriptive messages help future debugging."
        )
    elif avg_length > 100:
        insights.append(
            "Consider moving detailed explanations to the commit body, "
            "keeping the subject concise."
        )

    return insights[:5]


def analyze_commit_quality(commits: Sequence[CommitRecord]) -> CommitQualityMetrics:
    messages = [c.message or "" for c in commits]
    regular = [m for m in messages if not is_merge_commit(m)]

    if not regular:
        return CommitQualityMetrics(
            insights=["No regular commits found to analyze (merge commits are excluded)."]
        )

    conventional_count = 0
    ticket_count = 0
    body_count = 0
    good_subject_count = 0
    total_length = 0
    prefixes: Counter[str] = Counter()

    for message in regular:
        if is_conventional_commit(message):
            conventional_count += 1
            prefix = get_conventional_prefix(message)
            if prefix:
                prefixes[prefix] += 1
        if has_ticket_reference(message):
            ticket_count += 1
        if has_message_body(message):
            body_count += 1
        if 10 <= len(_subject(message).strip()) <= 72:
            good_subject_count += 1
        total_length += len(_subject(message))

    count = len(regular)
    avg_length = round_half_up(total_length / count)
    conventional = round_half_up(conventional_count / count * 100)
    ticket = round_half_up(ticket_count / count * 100)
    body = round_half_up(body_count / count * 100)
    subject = round_half_up(good_subject_count / count * 100)
    grade = calculate_grade(conventional, ticket, body, subject)

    # Counter.most_common keeps first-seen order for ties
    common_prefixes = [
        PrefixCount(prefix=p, count=n, percentage=round_half_up(n / count * 100))
        for p, n in prefixes.most_common(5)
    ]

    return CommitQualityMetrics(
        total_analyzed=count,
        average_message_length=avg_length,
        conventional_commit_score=conventional,
        ticket_reference_score=ticket,
        body_text_score=body,
        subject_line_score=subject,
        common_prefixes=common_prefixes,
        quality_grade=grade,
        insights=_quality_insights(conventional, ticket, body, subject, avg_length, grade),
    )


def analyze_recent_commit_quality(
    commits: Sequence[CommitRecord], days: int = 30, now: datetime | None = None
) -> CommitQualityMetrics:
    """Score only the last `days` days. Undated commits are kept."""
    cutoff = to_utc(now or datetime.now(UTC)) - timedelta(days=days)
    recent = [c for c in commits if c.authored_at is None or to_utc(c.authored_at) >= cutoff]
    return analyze_commit_quality(recent)


def compare_quality_periods(
    current: CommitQualityMetrics, previous: CommitQualityMetrics
) -> QualityTrend:
    current_value = GRADE_VALUES[current.quality_grade]
    previous_value = GRADE_VALUES[previous.quality_grade]
    diff = current_value - previous_value

    if diff > 0:
        direction = "improving"
    elif diff < 0:
        direction = "declining"
    else:
        direction = "stable"

    return QualityTrend(
        direction=direction,
        previous_grade=previous.quality_grade,
        change_percent=round_half_up(diff / previous_value * 100),
    )


def get_grade_description(grade: str) -> str:
    return GRADE_DESCRIPTIONS.get(grade, "Poor")
