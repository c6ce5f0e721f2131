"""
Developer persona detection.

Each detector either yields a (persona, score) candidate or nothing. The
highest-scoring candidate becomes the primary persona and the runner-up
the secondary one.
"""

from dataclasses import dataclass
from typing import Any

from app.services.analytics.types import Persona, PersonaResult
from app.services.analytics.utils import round_half_up

PERSONAS: dict[str, Persona] = {
    "NIGHT_OWL": Persona(
        id="NIGHT_OWL",
        name="Night Owl",
        description="Most productive when the world sleeps",
        criteria="60%+ of commits made after 8 PM",
        category="timing",
        rarity="uncommon",
    ),
    "EARLY_BIRD": Persona(
        id="EARLY_BIRD",
        name="Early Bird",
        description="Catches the worm with morning commits",
        criteria="50%+ of commits made before 9 AM",
        category="timing",
        rarity="uncommon",
    ),
    "WEEKEND_WARRIOR": Persona(
        id="WEEKEND_WARRIOR",
        name="Weekend Warrior",
        description="Codes while others rest",
        criteria="40%+ of commits on weekends",
        category="timing",
        rarity="rare",
    ),
    "NINE_TO_FIVE": Persona(
        id="NINE_TO_FIVE",
        name="Steady Ship",
        description="Reliable and consistent work hours",
        criteria="70%+ of commits during business hours",
        category="timing",
        rarity="common",
    ),
    "POLYGLOT": Persona(
        id="POLYGLOT",
        name="Polyglot",
        description="Master of multiple programming languages",
        criteria="5+ languages with 10%+ each",
        category="skill",
        rarity="rare",
    ),
    "SPECIALIST": Persona(
        id="SPECIALIST",
        name="Specialist",
        description="Deep expertise in one domain",
        criteria="70%+ commits in a single language",
        category="skill",
        rarity="common",
    ),
    "TYPESCRIPT_WIZARD": Persona(
        id="TYPESCRIPT_WIZARD",
        name="TypeScript Wizard",
        description="A master of type-safe JavaScript",
        criteria="60%+ TypeScript commits",
        category="skill",
        rarity="uncommon",
    ),
    "PYTHON_CHARMER": Persona(
        id="PYTHON_CHARMER",
        name="Python Charmer",
        description="Writes poetry in Python",
        criteria="60%+ Python commits",
        category="skill",
        rarity="uncommon",
    ),
    "STREAK_MASTER": Persona(
        id="STREAK_MASTER",
        name="Streak Master",
        description="Consistency is their superpower",
        criteria="30+ day current streak",
        category="habit",
        rarity="rare",
    ),
    "PROLIFIC_CODER": Persona(
        id="PROLIFIC_CODER",
        name="Prolific Coder",
        description="Sheer volume of quality work",
        criteria="5+ commits per active day",
        category="habit",
        rarity="uncommon",
    ),
    "CENTURY_CLUB": Persona(
        id="CENTURY_CLUB",
        name="Century Club",
        description="Proud member of the 100+ commit club",
        criteria="100+ total commits",
        category="achievement",
        rarity="common",
    ),
    "REPO_COLLECTOR": Persona(
        id="REPO_COLLECTOR",
        name="Repo Collector",
        description="A diverse portfolio of projects",
        criteria="10+ active repositories",
        category="achievement",
        rarity="uncommon",
    ),
}

DEFAULT_PERSONA = Persona(
    id="DEVELOPER",
    name="Developer",
    description="Building amazing things with code",
    criteria="Active GitHub user",
    category="habit",
    rarity="common",
)

NIGHT_HOURS = [20, 21, 22, 23, 0, 1, 2, 3, 4, 5]
MORNING_HOURS = [5, 6, 7, 8]
BUSINESS_HOURS = list(range(9, 18))

Candidate = tuple[Persona, float]


@dataclass
class PersonaContext:
    hourly_stats: dict[str, int] | None = None
    day_of_week_stats: dict[str, int] | None = None
    top_languages: list[dict[str, Any]] | None = None
    current_streak: int = 0
    total_commits: int = 0
    total_repos: int = 0
    commits_per_active_day: float = 0.0


def _hour_share(hourly_stats: dict[str, int], hours: list[int], total: int) -> float:
    return sum(hourly_stats.get(str(h), 0) for h in hours) / total * 100


def detect_timing_persona(hourly_stats: dict[str, int]) -> Candidate | None:
    total = sum(hourly_stats.values())
    if total == 0:
        return None

    night = _hour_share(hourly_stats, NIGHT_HOURS, total)
    morning = _hour_share(hourly_stats, MORNING_HOURS, total)
    business = _hour_share(hourly_stats, BUSINESS_HOURS, total)

    if night >= 60:
        return PERSONAS["NIGHT_OWL"], 70 + (night - 60)
    if morning >= 50:
        return PERSONAS["EARLY_BIRD"], 65 + morning
    if business >= 70:
        return PERSONAS["NINE_TO_FIVE"], 55 + (business - 70)
    return None


def detect_weekend_warrior(day_of_week_stats: dict[str, int]) -> Candidate | None:
    total = sum(day_of_week_stats.values())
    if total == 0:
        return None

    weekend = day_of_week_stats.get("Saturday", 0) + day_of_week_stats.get("Sunday", 0)
    percent = weekend / total * 100
    if percent >= 40:
        return PERSONAS["WEEKEND_WARRIOR"], 70 + (percent - 40) * 0.75
    return None


def detect_skill_persona(top_languages: list[dict[str, Any]]) -> Candidate | None:
    """Expects languages ordered by count, highest first."""
    if not top_languages:
        return None
    total = sum(lang["count"] for lang in top_languages)
    if total == 0:
        return None

    top = top_languages[0]
    top_percent = top["count"] / total * 100

    significant = [lang for lang in top_languages if lang["count"] / total * 100 >= 10]
    if len(significant) >= 5:
        return PERSONAS["POLYGLOT"], 80 + len(significant) * 2

    name = top["language"].lower()
    if name == "typescript" and top_percent >= 60:
        return PERSONAS["TYPESCRIPT_WIZARD"], 75 + (top_percent - 60)
    if name == "python" and top_percent >= 60:
        return PERSONAS["PYTHON_CHARMER"], 75 + (top_percent - 60)
    if top_percent >= 70:
        return PERSONAS["SPECIALIST"], 60 + (top_percent - 70)
    return None


def _candidates(context: PersonaContext, include_prolific: bool = True) -> list[Candidate]:
    candidates: list[Candidate] = []

    if context.hourly_stats:
        if found := detect_timing_persona(context.hourly_stats):
            candidates.append(found)
    if context.day_of_week_stats:
        if found := detect_weekend_warrior(context.day_of_week_stats):
            candidates.append(found)
    if context.top_languages:
        if found := detect_skill_persona(context.top_languages):
            candidates.append(found)

    if context.current_streak >= 30:
        candidates.append((PERSONAS["STREAK_MASTER"], min(100, 60 + context.current_streak)))
    if context.total_commits >= 100:
        candidates.append((PERSONAS["CENTURY_CLUB"], min(100, 50 + context.total_commits / 10)))
    if context.total_repos >= 10:
        candidates.append((PERSONAS["REPO_COLLECTOR"], min(100, 60 + context.total_repos * 2)))
    if include_prolific and context.commits_per_active_day >= 5:
        candidates.append(
            (PERSONAS["PROLIFIC_CODER"], min(100, 60 + context.commits_per_active_day * 5))
        )

    return candidates


def detect_persona(context: PersonaContext) -> PersonaResult:
    ranked = sorted(_candidates(context), key=lambda c: c[1], reverse=True)
    if not ranked:
        return PersonaResult(primary=DEFAULT_PERSONA, confidence=50)

    primary, score = ranked[0]
    return PersonaResult(
        primary=primary,
        secondary=ranked[1][0] if len(ranked) > 1 else None,
        confidence=round_half_up(score),
    )


def get_earned_personas(context: PersonaContext) -> list[Persona]:
    """Every persona the context qualifies for, in detector order (badge display)."""
    return [persona for persona, _ in _candidates(context, include_prolific=False)]
