"""Mapping raw store records into domain models and DataFrames."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import asdict
from typing import Any

import pandas as pd

from .errors import ValidationError
from .models import DeveloperModel, FeatureModel, IssueModel, ProjectModel
from .status import (
    is_resolved_status,
    normalize_role,
    normalize_seniority,
    normalize_severity,
    normalize_status,
)
from .timestamps import hours_between, normalize_timestamp

ISSUE_COLUMNS: tuple[str, ...] = (
    "id",
    "title",
    "severity",
    "status",
    "project_id",
    "feature_id",
    "assigned_to_id",
    "created_at",
    "resolved_at",
    "resolution_time",
    "fix_quality",
    "is_recurring",
    "recurrence_count",
    "parent_issue_id",
)


def _pick(raw: dict[str, Any], *names: str, default: Any = None) -> Any:
    """Return the first present key among snake_case/camelCase spellings."""
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return default


def _optional_id(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def decode_skills(value: Any) -> frozenset[str]:
    """Decode a skills blob (JSON text, list, or comma string) into a set."""
    if value is None or value == "":
        return frozenset()
    if isinstance(value, str):
        text = value.strip()
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = text.split(",")
        value = decoded
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, Iterable):
        return frozenset()
    return frozenset(str(item).strip() for item in value if str(item).strip())


def _as_int(value: Any, issue_id: str, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Issue {issue_id} {field_name} must be an integer, got {value!r}",
            details={"id": issue_id, "field": field_name},
        ) from exc


def map_issue(raw: dict[str, Any]) -> IssueModel:
    issue_id = _optional_id(_pick(raw, "id"))
    if issue_id is None:
        raise ValidationError("Issue record has no id", details={"field": "id"})
    created_at = normalize_timestamp(_pick(raw, "created_at", "createdAt"))
    if created_at is None:
        raise ValidationError(f"Issue {issue_id} has no valid creation date", details={"id": issue_id})
    status = normalize_status(_pick(raw, "status", default="open"))
    resolved_at = None
    resolution_time = None
    fix_quality = None
    if is_resolved_status(status):
        resolved_at = normalize_timestamp(_pick(raw, "resolved_at", "resolvedAt"))
        resolution_time = _pick(raw, "resolution_time", "resolutionTime")
        if resolution_time is None:
            resolution_time = hours_between(created_at, resolved_at)
        if resolution_time is not None:
            resolution_time = max(float(resolution_time), 0.0)
        fix_quality = _pick(raw, "fix_quality", "fixQuality")
        if fix_quality is not None:
            fix_quality = _as_int(fix_quality, issue_id, "fix_quality")
            if not 1 <= fix_quality <= 5:
                raise ValidationError(
                    f"Issue {issue_id} fix quality must be 1..5, got {fix_quality}",
                    details={"id": issue_id, "field": "fix_quality"},
                )
    recurrence_count = _as_int(
        _pick(raw, "recurrence_count", "recurrenceCount", default=0), issue_id, "recurrence_count"
    )
    if recurrence_count < 0:
        raise ValidationError(
            f"Issue {issue_id} has a negative recurrence count", details={"id": issue_id}
        )
    parent_issue_id = _optional_id(_pick(raw, "parent_issue_id", "parentIssueId"))
    children = _pick(raw, "child_issue_ids", "childIssueIds", "childIssues", default=[])
    child_ids = [str(c.get("id") if isinstance(c, dict) else c) for c in children]
    return IssueModel(
        id=issue_id,
        title=str(_pick(raw, "title", default="")),
        severity=normalize_severity(_pick(raw, "severity")),
        status=status,
        project_id=str(_pick(raw, "project_id", "projectId", default="")),
        created_at=created_at,
        feature_id=_optional_id(_pick(raw, "feature_id", "featureId")),
        assigned_to_id=_optional_id(_pick(raw, "assigned_to_id", "assignedToId")),
        resolved_at=resolved_at,
        resolution_time=resolution_time,
        fix_quality=fix_quality,
        is_recurring=recurrence_count > 0 or parent_issue_id is not None,
        recurrence_count=recurrence_count,
        parent_issue_id=parent_issue_id,
        child_issue_ids=child_ids,
    )


def map_developer(raw: dict[str, Any]) -> DeveloperModel:
    dev_id = _optional_id(_pick(raw, "id"))
    if dev_id is None:
        raise ValidationError("Developer record has no id", details={"field": "id"})
    return DeveloperModel(
        id=dev_id,
        full_name=str(_pick(raw, "full_name", "fullName", "name", default=dev_id)),
        skills=decode_skills(_pick(raw, "skills")),
        seniority_level=normalize_seniority(_pick(raw, "seniority_level", "seniorityLevel")),
        role=normalize_role(_pick(raw, "role")),
    )


def map_feature(raw: dict[str, Any]) -> FeatureModel:
    return FeatureModel(
        id=str(_pick(raw, "id")),
        name=str(_pick(raw, "name", default="")),
        project_id=str(_pick(raw, "project_id", "projectId", default="")),
        created_at=normalize_timestamp(_pick(raw, "created_at", "createdAt")),
    )


def map_project(raw: dict[str, Any]) -> ProjectModel:
    status = _pick(raw, "status")
    project_type = _pick(raw, "project_type", "projectType")
    return ProjectModel(
        id=str(_pick(raw, "id")),
        name=str(_pick(raw, "name", default="")),
        status=str(status).strip().lower() if status is not None else None,
        project_type=(str(project_type).strip() or None) if project_type is not None else None,
    )


def issues_to_dataframe(issues: Iterable[IssueModel]) -> pd.DataFrame:
    """Flatten issue models into a DataFrame with stable columns and dtypes.

    An empty input yields an empty frame that still carries every column in
    ``ISSUE_COLUMNS``, so downstream filters never hit a missing key.
    """
    rows = []
    for issue in issues:
        row = asdict(issue)
        row.pop("child_issue_ids", None)
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(ISSUE_COLUMNS))
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")
    df["resolved_at"] = pd.to_datetime(df["resolved_at"], utc=True, errors="coerce")
    df["resolution_time"] = pd.to_numeric(df["resolution_time"], errors="coerce")
    df["fix_quality"] = pd.to_numeric(df["fix_quality"], errors="coerce")
    df["recurrence_count"] = pd.to_numeric(df["recurrence_count"], errors="coerce").fillna(0).astype(int)
    df["is_recurring"] = df["is_recurring"].fillna(False).astype(bool)
    return df
