"""Severity, status, and role normalization utilities.

Centralized vocabulary handling reused by the mappers and every analytics
module. It uses the aliases from config.py (SEVERITY_ALIASES, STATUS_ALIASES).
"""

from __future__ import annotations

from .config import (
    ACTIVE_STATUSES,
    DEVELOPER_ROLE,
    MANAGER_ROLE,
    RESOLVED_STATUSES,
    SENIORITY_LEVELS,
    SEVERITY_ALIASES,
    STATUS_ALIASES,
)
from .errors import ValidationError


def normalize_severity(value: str | None) -> str:
    """Map a raw severity to one of critical/high/medium/low.

    Parameters
    ----------
    value : str | None
        Raw severity string from the store.

    Returns
    -------
    str
        Canonical severity name.

    Raises
    ------
    ValidationError
        If the value is empty or not a known severity.

    Examples
    --------
    >>> normalize_severity(" High ")
    'high'
    >>> normalize_severity("blocker")
    'critical'
    """
    text = str(value or "").strip().lower()
    if text in SEVERITY_ALIASES:
        return SEVERITY_ALIASES[text]
    raise ValidationError(f"Unknown severity: {value!r}", details={"field": "severity"})


def normalize_status(value: str | None) -> str:
    """Map a raw status to one of open/in_progress/resolved/closed.

    Raises
    ------
    ValidationError
        If the value is empty or not a known status.
    """
    text = " ".join(str(value or "").strip().lower().split())
    if text in STATUS_ALIASES:
        return STATUS_ALIASES[text]
    raise ValidationError(f"Unknown status: {value!r}", details={"field": "status"})


def normalize_role(value: str | None) -> str:
    text = str(value or "").strip().lower()
    if text == MANAGER_ROLE:
        return MANAGER_ROLE
    return DEVELOPER_ROLE


def normalize_seniority(value: str | None) -> str:
    text = str(value or "").strip().lower()
    if text in SENIORITY_LEVELS:
        return text
    return "mid"


def is_resolved_status(status: str | None) -> bool:
    """True if the canonical status is resolved or closed."""
    return status in RESOLVED_STATUSES


def is_active_status(status: str | None) -> bool:
    """True if the canonical status is open or in_progress."""
    return status in ACTIVE_STATUSES
