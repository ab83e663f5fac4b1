"""Portfolio-level summaries: dashboard counters and project comparison."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from devpulse_app.core.config import ARCHIVED_PROJECT_STATUS, RESOLVED_STATUSES, SEVERITY_ORDER, STATUS_ORDER
from devpulse_app.core.models import ProjectModel
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights


def _mean_resolution(df: pd.DataFrame) -> float:
    if df.empty:
        return 0.0
    values = df["resolution_time"].dropna()
    return float(values.mean()) if not values.empty else 0.0


def dashboard_stats(df: pd.DataFrame) -> dict:
    if df.empty:
        return {
            "total_issues": 0,
            "open_issues": 0,
            "resolved_issues": 0,
            "recurring_issues": 0,
            "avg_resolution_time": 0,
            "severity_distribution": {sev: 0 for sev in SEVERITY_ORDER},
            "status_distribution": {status: 0 for status in STATUS_ORDER},
        }
    severity = df["severity"].value_counts()
    status = df["status"].value_counts()
    return {
        "total_issues": int(len(df)),
        "open_issues": int((df["status"] == "open").sum()),
        "resolved_issues": int(df["status"].isin(RESOLVED_STATUSES).sum()),
        "recurring_issues": int(df["is_recurring"].sum()),
        "avg_resolution_time": round(_mean_resolution(df)),
        "severity_distribution": {sev: int(severity.get(sev, 0)) for sev in SEVERITY_ORDER},
        "status_distribution": {st: int(status.get(st, 0)) for st in STATUS_ORDER},
    }


def health_score(open_issues: int, critical_issues: int, recurring_issues: int, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    raw = (
        100.0
        - open_issues * weights.health_open_penalty
        - critical_issues * weights.health_critical_penalty
        - recurring_issues * weights.health_recurring_penalty
    )
    return float(min(100.0, max(0.0, raw)))


def compare_projects(
    projects: Iterable[ProjectModel],
    df: pd.DataFrame,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[dict]:
    grouped = {key: frame for key, frame in df.groupby("project_id")} if not df.empty else {}
    rows = []
    for project in projects:
        if project.status == ARCHIVED_PROJECT_STATUS:
            continue
        issues = grouped.get(project.id, df.iloc[0:0])
        open_issues = int((issues["status"] == "open").sum()) if not issues.empty else 0
        critical = int((issues["severity"] == "critical").sum()) if not issues.empty else 0
        recurring = int(issues["is_recurring"].sum()) if not issues.empty else 0
        rows.append(
            {
                "project_id": project.id,
                "project_name": project.name,
                "total_issues": int(len(issues)),
                "open_issues": open_issues,
                "resolved_issues": int(issues["status"].isin(RESOLVED_STATUSES).sum()) if not issues.empty else 0,
                "critical_issues": critical,
                "recurring_issues": recurring,
                "avg_resolution_time": round(_mean_resolution(issues)),
                "health_score": health_score(open_issues, critical, recurring, weights),
            }
        )
    return rows
