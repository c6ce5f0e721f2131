"""Constants for the GitHub client."""

API_VERSION = "2022-11-28"
PER_PAGE_MAX = 100

# Retry ceilings for throttled requests
MAX_PRIMARY_RETRIES = 3
MAX_SECONDARY_RETRIES = 1
DEFAULT_SECONDARY_WAIT_SECONDS = 60

DEFAULT_LANGUAGE_COLOR = "#8b949e"

# Standard GitHub language colors, used by the language breakdowns
GITHUB_LANGUAGE_COLORS: dict[str, str] = {
    "Python": "#3572A5",
    "JavaScript": "#f1e05a",
    "TypeScript": "#3178c6",
    "Java": "#b07219",
    "C++": "#f34b7d",
    "C": "#555555",
    "C#": "#178600",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "Ruby": "#701516",
    "PHP": "#4F5D95",
    "Swift": "#F05138",
    "Kotlin": "#A97BFF",
    "Dart": "#00B4AB",
    "Scala": "#c22d40",
    "Elixir": "#6e4a7e",
    "Haskell": "#5e5086",
    "Lua": "#000080",
    "Solidity": "#AA6746",
    "Shell": "#89e051",
    "PowerShell": "#012456",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "SCSS": "#c6538c",
    "Vue": "#41b883",
    "Svelte": "#ff3e00",
    "Dockerfile": "#384d54",
    "Makefile": "#427819",
    "SQL": "#e38c00",
    "R": "#198CE7",
    "Jupyter Notebook": "#DA5B0B",
    "Markdown": "#083fa1",
    "YAML": "#cb171e",
    "JSON": "#292929",
    "TOML": "#9c4221",
}


def get_language_color(language: str) -> str:
    return GITHUB_LANGUAGE_COLORS.get(language, DEFAULT_LANGUAGE_COLOR)
