"""Small numeric and date helpers shared by the calculators."""

import math
import statistics
from collections.abc import Iterable
from datetime import UTC, date, datetime

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
SHORT_DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round halves upward (2.5 -> 3, -2.5 -> -2), unlike Python's banker's rounding.

    Returns an int when ndigits is 0.
    """
    factor = 10**ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    if ndigits == 0:
        return int(rounded)
    return rounded


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_day(value: datetime) -> date:
    return to_utc(value).date()


def mean(values: list[float]) -> float:
    return statistics.fmean(values) if values else 0.0


def population_std(values: list[float]) -> float:
    return statistics.pstdev(values) if values else 0.0


def coefficient_of_variation(values: list[float]) -> float:
    avg = mean(values)
    if avg == 0:
        return 0.0
    return population_std(values) / avg


def unique_days(dates: Iterable[datetime]) -> list[date]:
    return sorted({utc_day(d) for d in dates})
