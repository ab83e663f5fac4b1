from datetime import UTC, datetime, timedelta

import pytest

from devpulse_app.analytics.metrics.quality import quality_trend
from devpulse_app.core.errors import NotFoundError, ValidationError
from devpulse_app.core.mappers import issues_to_dataframe
from devpulse_app.core.models import DeveloperModel, FeatureModel, IssueModel, ProjectModel, Timeframe
from devpulse_app.core.repository import InMemoryIssueRepository
from devpulse_app.core.service import AnalyticsService

NOW = datetime(2026, 10, 15, tzinfo=UTC)


def _issue(
    issue_id,
    *,
    status="open",
    severity="low",
    project="p1",
    dev="d1",
    days_ago=3,
    hours=None,
    quality=None,
    count=0,
    parent=None,
    feature=None,
):
    created = NOW - timedelta(days=days_ago)
    resolved = status in ("resolved", "closed")
    return IssueModel(
        id=issue_id,
        title=f"Issue {issue_id}",
        severity=severity,
        status=status,
        project_id=project,
        feature_id=feature,
        assigned_to_id=dev,
        created_at=created,
        resolved_at=created + timedelta(hours=hours) if resolved else None,
        resolution_time=float(hours) if resolved else None,
        fix_quality=quality if resolved else None,
        recurrence_count=count,
        parent_issue_id=parent,
        is_recurring=count > 0 or parent is not None,
    )


def _sample_issues():
    return [
        _issue("a", status="resolved", severity="critical", days_ago=10, hours=10, quality=5),
        _issue("b", status="closed", severity="high", project="p2", days_ago=20, hours=30, quality=3, count=2),
        _issue("c", severity="medium", days_ago=5),
        _issue("e", status="in_progress", severity="critical", days_ago=3),
        _issue("r", days_ago=8, parent="a", feature="f1"),
        _issue("old", status="resolved", days_ago=200, hours=5, quality=1),
        _issue("f", status="resolved", project="p2", dev="d2", days_ago=4, hours=6, quality=4),
        _issue("g", severity="high", project="p2", dev="d2", days_ago=2),
        _issue("h", severity="critical", dev="m1", days_ago=1),
    ]


def _service(issues=None):
    repo = InMemoryIssueRepository(
        issues=_sample_issues() if issues is None else issues,
        developers=[
            DeveloperModel(id="d1", full_name="Ana", skills=frozenset({"Web", "python"})),
            DeveloperModel(id="d2", full_name="Ben"),
            DeveloperModel(id="m1", full_name="Mo", role="manager"),
        ],
        features=[FeatureModel(id="f1", name="Login", project_id="p1")],
        projects=[
            ProjectModel(id="p1", name="Portal", project_type="Web"),
            ProjectModel(id="p2", name="Payments"),
        ],
    )
    return AnalyticsService(repo, clock=lambda: NOW)


def test_developer_detail_summarizes_work_in_timeframe():
    detail = _service().get_developer_detail("d1")
    metrics = detail["metrics"]
    assert detail["developer"]["skills"] == ["Web", "python"]
    assert metrics["total_issues"] == 5
    assert metrics["resolved_count"] == 2
    assert metrics["open_count"] == 2
    assert metrics["in_progress_count"] == 1
    assert metrics["recurring_count"] == 2
    assert metrics["completion_rate"] == pytest.approx(40.0)
    assert metrics["avg_resolution_time"] == pytest.approx(20.0)
    assert metrics["avg_fix_quality"] == pytest.approx(4.0)
    assert metrics["productivity_score"] == pytest.approx(174.0)
    assert detail["current_projects"] == 2


def test_developer_detail_for_manager_has_no_score():
    detail = _service().get_developer_detail("m1")
    assert detail["metrics"]["productivity_score"] is None
    assert detail["metrics"]["total_issues"] == 1


def test_unknown_developer_is_not_found():
    svc = _service()
    with pytest.raises(NotFoundError):
        svc.get_developer_detail("ghost")
    with pytest.raises(NotFoundError):
        svc.get_team_comparison("ghost")
    with pytest.raises(NotFoundError):
        svc.get_workload_distribution("ghost")


def test_resolution_breakdown_orders_severity_and_slowest_projects():
    breakdown = _service().get_resolution_time_breakdown("d1")
    assert breakdown["by_severity"] == [
        {"severity": "critical", "avg_time": 10.0, "count": 1},
        {"severity": "high", "avg_time": 30.0, "count": 1},
    ]
    assert [row["project_name"] for row in breakdown["by_project"]] == ["Payments", "Portal"]


def test_resolution_breakdown_empty_for_idle_developer():
    assert _service([]).get_resolution_time_breakdown("d2") == {"by_severity": [], "by_project": []}


def test_skills_utilization_matches_project_types_to_skills():
    usage = _service().get_skills_utilization("d1")
    assert usage["utilization"] == [
        {"skill": "Web", "count": 4, "percentage": 80, "matches_skill": True},
        {"skill": "Other", "count": 1, "percentage": 20, "matches_skill": False},
    ]
    assert usage["unused_skills"] == ["python"]


def test_reopened_issues_sorted_by_recurrence_count():
    rows = _service().get_reopened_issues("d1")
    assert [row["id"] for row in rows] == ["b", "r"]
    assert rows[0]["recurrence_count"] == 2
    assert rows[0]["project"] == "Payments"
    assert rows[0]["feature"] is None
    assert rows[1]["feature"] == "Login"


def test_quality_trend_averages_per_week():
    trend = _service().get_quality_trend("d1")
    assert [(row["avg_quality"], row["count"]) for row in trend] == [(3.0, 1), (5.0, 1)]
    assert trend[0]["week_start"] == NOW - timedelta(days=21)
    assert trend[1]["week_start"] == NOW - timedelta(days=14)


def test_quality_trend_skips_unrated_fixes():
    issues = [_issue("x", status="resolved", days_ago=2, hours=1, quality=None)]
    frame = Timeframe(start=NOW - timedelta(days=28), end=NOW)
    assert quality_trend(issues_to_dataframe(issues), frame) == []


def test_quality_trend_rejects_non_positive_weeks():
    with pytest.raises(ValidationError):
        _service().get_quality_trend("d1", weeks=0)


def test_workload_for_one_developer():
    load = _service().get_workload_distribution("d1")
    assert load["total_active"] == 3
    assert load["by_severity"] == [
        {"severity": "critical", "count": 1},
        {"severity": "high", "count": 0},
        {"severity": "medium", "count": 1},
        {"severity": "low", "count": 1},
    ]
    assert load["by_project"] == [{"project_id": "p1", "project_name": "Portal", "count": 3}]


def test_team_workload_skips_managers():
    rows = _service().get_workload_distribution()
    assert rows == [
        {"developer_id": "d1", "name": "Ana", "count": 3, "critical": 1, "high": 0},
        {"developer_id": "d2", "name": "Ben", "count": 1, "critical": 0, "high": 1},
    ]


def test_team_comparison_flags_target_and_averages():
    result = _service().get_team_comparison("d2")
    rows = {row["developer_id"]: row for row in result["comparisons"]}
    assert set(rows) == {"d1", "d2"}
    assert rows["d2"]["is_target"] is True
    assert rows["d1"]["is_target"] is False
    assert rows["d2"]["completion_rate"] == pytest.approx(50.0)
    assert result["team_average"] == {
        "avg_resolution_time": pytest.approx(13.0),
        "avg_quality": pytest.approx(4.0),
        "completion_rate": pytest.approx(45.0),
    }


def test_team_comparison_with_no_developers_is_zero():
    repo = InMemoryIssueRepository(developers=[DeveloperModel(id="m1", full_name="Mo", role="manager")])
    result = AnalyticsService(repo, clock=lambda: NOW).get_team_comparison("m1")
    assert result == {
        "comparisons": [],
        "team_average": {"avg_resolution_time": 0.0, "avg_quality": 0.0, "completion_rate": 0.0},
    }
