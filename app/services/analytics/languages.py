"""Language distribution across a user's repositories."""

import math
from collections.abc import Iterable
from typing import Any

from app.services.analytics.utils import round_half_up
from app.services.github.constants import get_language_color

EXTENSION_MAP: dict[str, str] = {
    "js": "JavaScript",
    "jsx": "JavaScript",
    "mjs": "JavaScript",
    "cjs": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "py": "Python",
    "pyw": "Python",
    "pyx": "Python",
    "ipynb": "Jupyter Notebook",
    "java": "Java",
    "kt": "Kotlin",
    "kts": "Kotlin",
    "c": "C",
    "h": "C",
    "cpp": "C++",
    "cc": "C++",
    "cxx": "C++",
    "hpp": "C++",
    "cs": "C#",
    "go": "Go",
    "rs": "Rust",
    "rb": "Ruby",
    "erb": "Ruby",
    "php": "PHP",
    "swift": "Swift",
    "dart": "Dart",
    "html": "HTML",
    "htm": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "sass": "SCSS",
    "less": "Less",
    "vue": "Vue",
    "svelte": "Svelte",
    "sh": "Shell",
    "bash": "Shell",
    "zsh": "Shell",
    "ps1": "PowerShell",
    "bat": "Batch",
    "cmd": "Batch",
    "json": "JSON",
    "yaml": "YAML",
    "yml": "YAML",
    "xml": "XML",
    "toml": "TOML",
    "ini": "INI",
    "sql": "SQL",
    "prisma": "Prisma",
    "md": "Markdown",
    "mdx": "MDX",
    "rst": "reStructuredText",
    "r": "R",
    "scala": "Scala",
    "lua": "Lua",
    "ex": "Elixir",
    "exs": "Elixir",
    "erl": "Erlang",
    "clj": "Clojure",
    "hs": "Haskell",
    "ml": "OCaml",
    "fs": "F#",
    "nim": "Nim",
    "zig": "Zig",
    "v": "V",
    "sol": "Solidity",
}

LANGUAGE_CATEGORIES: dict[str, set[str]] = {
    "frontend": {"JavaScript", "TypeScript", "HTML", "CSS", "SCSS", "Less", "Vue", "Svelte"},
    "backend": {"Python", "Java", "Go", "Ruby", "PHP", "C#", "Kotlin", "Scala", "Elixir"},
    "systems": {"C", "C++", "Rust", "Zig", "Nim"},
    "scripting": {"Shell", "PowerShell", "Batch", "Lua", "R"},
}


def aggregate_language_stats(repos: Iterable[tuple[str | None, int]]) -> dict[str, int]:
    """Weight each repository's primary language by its commit count (at least 1)."""
    stats: dict[str, int] = {}
    for language, commits in repos:
        if language:
            stats[language] = stats.get(language, 0) + (commits or 1)
    return stats


def detect_language_from_extension(filename: str) -> str | None:
    if "." not in filename:
        return None
    ext = filename.rsplit(".", 1)[1].lower()
    return EXTENSION_MAP.get(ext)


def get_top_languages(stats: dict[str, int], limit: int = 5) -> list[dict[str, Any]]:
    total = sum(stats.values())
    if total == 0:
        return []

    ranked = sorted(stats.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [
        {
            "language": language,
            "count": count,
            "percentage": round_half_up(count / total * 100),
            "color": get_language_color(language),
        }
        for language, count in ranked
    ]


def categorize_languages(stats: dict[str, int]) -> dict[str, dict[str, int]]:
    result: dict[str, dict[str, int]] = {name: {} for name in LANGUAGE_CATEGORIES}
    result["other"] = {}
    for language, count in stats.items():
        bucket = next(
            (name for name, members in LANGUAGE_CATEGORIES.items() if language in members),
            "other",
        )
        result[bucket][language] = count
    return result


def get_primary_expertise(stats: dict[str, int]) -> str | None:
    if not stats:
        return None
    return max(stats.items(), key=lambda item: item[1])[0]


def calculate_language_diversity(stats: dict[str, int]) -> int:
    """Shannon entropy normalised to 0-100; 0 for one language or none."""
    total = sum(stats.values())
    if total == 0 or len(stats) <= 1:
        return 0

    entropy = 0.0
    for count in stats.values():
        p = count / total
        if p > 0:
            entropy -= p * math.log2(p)

    return round_half_up(entropy / math.log2(len(stats)) * 100)
