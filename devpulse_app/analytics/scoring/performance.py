"""Per-developer performance breakdowns.

Everything here works on the issue DataFrame from ``issues_to_dataframe``.
Unless noted otherwise an issue belongs to a timeframe by its ``created_at``,
which is how the developer detail pages scope "work taken on in the period".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import pandas as pd

from devpulse_app.core.config import ACTIVE_STATUSES, RESOLVED_STATUSES, SEVERITY_ORDER
from devpulse_app.core.models import DeveloperModel, ProjectModel, Timeframe
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights

from .productivity import in_range, score_developer

OTHER_PROJECT_TYPE = "Other"
TOP_PROJECTS = 5


def _mean(values: pd.Series) -> float:
    values = values.dropna()
    return float(values.mean()) if not values.empty else 0.0


def created_in_timeframe(df: pd.DataFrame, developer_id: str, timeframe: Timeframe) -> pd.DataFrame:
    if df.empty:
        return df
    return df[(df["assigned_to_id"] == developer_id) & in_range(df["created_at"], timeframe)]


def _work_summary(issues: pd.DataFrame) -> dict:
    """Counts, completion rate (percent) and averages over one developer's issues."""
    if issues.empty:
        return {
            "total_issues": 0,
            "resolved_count": 0,
            "open_count": 0,
            "in_progress_count": 0,
            "recurring_count": 0,
            "completion_rate": 0.0,
            "avg_resolution_time": 0.0,
            "avg_fix_quality": 0.0,
        }
    resolved = issues[issues["status"].isin(RESOLVED_STATUSES)]
    total = int(len(issues))
    return {
        "total_issues": total,
        "resolved_count": int(len(resolved)),
        "open_count": int((issues["status"] == "open").sum()),
        "in_progress_count": int((issues["status"] == "in_progress").sum()),
        "recurring_count": int(issues["is_recurring"].sum()),
        "completion_rate": round(len(resolved) / total * 100, 1),
        "avg_resolution_time": round(_mean(resolved["resolution_time"]), 1),
        "avg_fix_quality": round(_mean(resolved["fix_quality"]), 1),
    }


def developer_detail(
    developer: DeveloperModel,
    df: pd.DataFrame,
    timeframe: Timeframe,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> dict:
    """Profile plus work summary for one developer.

    ``productivity_score`` is the same figure the rankings use (resolved in
    the timeframe), so the detail page and the leaderboard always agree.
    Managers get ``None`` instead of a score.
    """
    issues = created_in_timeframe(df, developer.id, timeframe)
    metrics = _work_summary(issues)
    if developer.is_manager:
        metrics["productivity_score"] = None
    else:
        metrics["productivity_score"] = round(score_developer(developer, df, timeframe, weights).productivity_score, 2)
    return {
        "developer": {
            "id": developer.id,
            "full_name": developer.full_name,
            "skills": sorted(developer.skills),
            "seniority_level": developer.seniority_level,
            "role": developer.role,
        },
        "metrics": metrics,
        "current_projects": int(issues["project_id"].nunique()) if not issues.empty else 0,
    }


def resolution_breakdown(
    df: pd.DataFrame,
    developer_id: str,
    timeframe: Timeframe,
    project_names: Mapping[str, str],
    *,
    top_projects: int = TOP_PROJECTS,
) -> dict:
    """Mean resolution hours for one developer by severity and by project.

    Projects are sorted slowest first and cut to ``top_projects``.
    """
    issues = created_in_timeframe(df, developer_id, timeframe)
    if not issues.empty:
        issues = issues[issues["resolution_time"].notna()]
    if issues.empty:
        return {"by_severity": [], "by_project": []}

    by_severity = issues.groupby("severity")["resolution_time"].agg(["mean", "count"])
    severity_rows = [
        {"severity": sev, "avg_time": round(float(by_severity.at[sev, "mean"]), 1), "count": int(by_severity.at[sev, "count"])}
        for sev in SEVERITY_ORDER
        if sev in by_severity.index
    ]
    by_project = issues.groupby("project_id")["resolution_time"].agg(["mean", "count"])
    project_rows = [
        {
            "project_id": pid,
            "project_name": project_names.get(pid),
            "avg_time": round(float(row["mean"]), 1),
            "count": int(row["count"]),
        }
        for pid, row in by_project.iterrows()
    ]
    project_rows.sort(key=lambda r: (-r["avg_time"], r["project_id"]))
    return {"by_severity": severity_rows, "by_project": project_rows[:top_projects]}


def skills_utilization(
    developer: DeveloperModel,
    df: pd.DataFrame,
    timeframe: Timeframe,
    projects: Mapping[str, ProjectModel],
) -> dict:
    """Share of a developer's issues per project type, matched against their skills.

    Project type stands in for the skill an issue exercises. Types without a
    value fall under ``"Other"``. ``unused_skills`` lists declared skills that
    no issue in the timeframe touched.
    """
    issues = created_in_timeframe(df, developer.id, timeframe)
    skills = {s.lower(): s for s in developer.skills}
    counts: dict[str, int] = {}
    for pid in (issues["project_id"] if not issues.empty else []):
        project = projects.get(pid)
        kind = project.project_type if project is not None and project.project_type else OTHER_PROJECT_TYPE
        counts[kind] = counts.get(kind, 0) + 1
    total = sum(counts.values())
    rows = [
        {
            "skill": kind,
            "count": count,
            "percentage": round(count / total * 100),
            "matches_skill": kind.lower() in skills,
        }
        for kind, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    used = {kind.lower() for kind in counts}
    return {
        "utilization": rows,
        "unused_skills": sorted(declared for lowered, declared in skills.items() if lowered not in used),
    }


def reopened_issues(
    df: pd.DataFrame,
    developer_id: str,
    timeframe: Timeframe,
    project_names: Mapping[str, str],
    feature_names: Mapping[str, str],
) -> list[dict]:
    """Recurring issues assigned to the developer, most recurrences first."""
    issues = created_in_timeframe(df, developer_id, timeframe)
    if issues.empty:
        return []
    issues = issues[issues["is_recurring"].astype(bool)]
    issues = issues.sort_values(["recurrence_count", "id"], ascending=[False, True])
    return [
        {
            "id": row.id,
            "title": row.title,
            "project": project_names.get(row.project_id),
            "feature": feature_names.get(row.feature_id) if isinstance(row.feature_id, str) else None,
            "severity": row.severity,
            "recurrence_count": int(row.recurrence_count),
            "status": row.status,
        }
        for row in issues.itertuples(index=False)
    ]


def workload_distribution(
    df: pd.DataFrame,
    developers: Iterable[DeveloperModel],
    project_names: Mapping[str, str],
    developer_id: str | None = None,
) -> dict | list[dict]:
    """Open and in-progress load for one developer, or per developer for the team.

    The team view skips managers and unassigned issues and lists the busiest
    developers first.
    """
    active = df[df["status"].isin(ACTIVE_STATUSES)] if not df.empty else df
    if developer_id is not None:
        mine = active[active["assigned_to_id"] == developer_id] if not active.empty else active
        severity = mine["severity"].value_counts() if not mine.empty else pd.Series(dtype=int)
        project = mine["project_id"].value_counts() if not mine.empty else pd.Series(dtype=int)
        by_project = [
            {"project_id": pid, "project_name": project_names.get(pid), "count": int(count)}
            for pid, count in project.items()
        ]
        by_project.sort(key=lambda r: (-r["count"], r["project_id"]))
        return {
            "total_active": int(len(mine)),
            "by_severity": [{"severity": sev, "count": int(severity.get(sev, 0))} for sev in SEVERITY_ORDER],
            "by_project": by_project,
        }

    rows = []
    for dev in developers:
        if dev.is_manager:
            continue
        mine = active[active["assigned_to_id"] == dev.id] if not active.empty else active
        if mine.empty:
            continue
        rows.append(
            {
                "developer_id": dev.id,
                "name": dev.full_name,
                "count": int(len(mine)),
                "critical": int((mine["severity"] == "critical").sum()),
                "high": int((mine["severity"] == "high").sum()),
            }
        )
    return sorted(rows, key=lambda r: (-r["count"], r["developer_id"]))


def team_comparison(
    developers: Iterable[DeveloperModel],
    df: pd.DataFrame,
    target_id: str,
    timeframe: Timeframe,
) -> dict:
    """Compare every non-manager developer's work summary with the team mean."""
    comparisons = []
    for dev in developers:
        if dev.is_manager:
            continue
        summary = _work_summary(created_in_timeframe(df, dev.id, timeframe))
        comparisons.append(
            {
                "developer_id": dev.id,
                "name": dev.full_name,
                "resolved_count": summary["resolved_count"],
                "avg_resolution_time": summary["avg_resolution_time"],
                "avg_quality": summary["avg_fix_quality"],
                "completion_rate": summary["completion_rate"],
                "is_target": dev.id == target_id,
            }
        )
    team_average = {
        key: round(sum(row[key] for row in comparisons) / len(comparisons), 1) if comparisons else 0.0
        for key in ("avg_resolution_time", "avg_quality", "completion_rate")
    }
    return {"comparisons": comparisons, "team_average": team_average}
