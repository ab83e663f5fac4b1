"""Central configuration, constants, and analysis window defaults."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Time Handling
# =============================================================================
# Naive timestamps coming from the store are interpreted in this zone.
TIMEZONE = "UTC"
HOURS_PER_DAY: float = 24.0
SECONDS_PER_DAY: float = 86400.0

# =============================================================================
# Issue Vocabulary
# =============================================================================
SEVERITY_ORDER: Sequence[str] = ("critical", "high", "medium", "low")
STATUS_ORDER: Sequence[str] = ("open", "in_progress", "resolved", "closed")
RESOLVED_STATUSES: frozenset[str] = frozenset({"resolved", "closed"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"open", "in_progress"})
SENIORITY_LEVELS: Sequence[str] = ("junior", "mid", "senior", "lead", "principal")
MANAGER_ROLE = "manager"
DEVELOPER_ROLE = "developer"
ARCHIVED_PROJECT_STATUS = "archived"

# Map various severity strings to canonical names (lowercase keys)
SEVERITY_ALIASES: dict[str, str] = {
    "critical": "critical",
    "blocker": "critical",
    "urgent": "critical",
    "high": "high",
    "major": "high",
    "medium": "medium",
    "normal": "medium",
    "moderate": "medium",
    "low": "low",
    "minor": "low",
    "trivial": "low",
}

# Map various status strings to canonical names (lowercase keys)
STATUS_ALIASES: dict[str, str] = {
    "open": "open",
    "new": "open",
    "to do": "open",
    "todo": "open",
    "reported": "open",
    "in progress": "in_progress",
    "in_progress": "in_progress",
    "in-progress": "in_progress",
    "inprogress": "in_progress",
    "working": "in_progress",
    "resolved": "resolved",
    "done": "resolved",
    "fixed": "resolved",
    "closed": "closed",
    "complete": "closed",
    "completed": "closed",
}

# =============================================================================
# Analysis Windows
# =============================================================================
DEFAULT_PRODUCTIVITY_WEEKS: int = 12  # Default lookback for productivity scores
DEFAULT_RECURRENCE_LOOKBACK_DAYS: int = 90  # Resolved-issue window for recurrence matching
DEFAULT_HOTSPOT_WINDOW_DAYS: int = 180  # Trailing bug window for hotspot detection
DEFAULT_RECURRENCE_MONTHS: int = 6  # Months shown in recurrence trends
DEFAULT_VELOCITY_WEEKS: int = 12
VELOCITY_ROLLING_WEEKS: int = 4
TREND_BUCKET_DAYS: int = 7

# Quality assumed for resolved issues recorded without a fix-quality rating
DEFAULT_FIX_QUALITY: int = 3

# =============================================================================
# Recurrence Matching
# =============================================================================
TITLE_SIMILARITY_THRESHOLD: float = 0.6

# Words ignored when comparing issue titles
TITLE_STOP_WORDS: frozenset[str] = frozenset(
    {
        "a",
        "an",
        "and",
        "at",
        "by",
        "for",
        "from",
        "in",
        "is",
        "it",
        "of",
        "on",
        "or",
        "the",
        "to",
        "when",
        "with",
    }
)

# Inflection suffixes stripped from title words (longest first)
TITLE_SUFFIXES: Sequence[str] = ("ures", "ure", "ing", "ed", "es", "s")
TITLE_MIN_STEM_LENGTH: int = 3

# Retries after a conflicting concurrent link write
RECURRENCE_CONFLICT_RETRIES: int = 1

# =============================================================================
# Background Work
# =============================================================================
# Hotspot scans run off the caller's thread; a single worker keeps scans
# serialized per service instance.
HOTSPOT_SCAN_MAX_WORKERS: int = 1


@dataclass(slots=True)
class AppSettings:
    scoring_config_name: str = "scoring.yaml"
    result_precision: int = 2


SETTINGS = AppSettings()
