from datetime import UTC, datetime, timedelta

import pytest

from devpulse_app.analytics.metrics.time_to_fix import mean_resolution_by
from devpulse_app.core.errors import ValidationError
from devpulse_app.core.mappers import issues_to_dataframe
from devpulse_app.core.models import DeveloperModel, IssueModel, ProjectModel
from devpulse_app.core.repository import InMemoryIssueRepository
from devpulse_app.core.service import AnalyticsService

NOW = datetime(2026, 10, 1, tzinfo=UTC)


def _issue(issue_id, severity, hours, *, dev="d1", project="p1", days_ago=5):
    resolved = hours is not None
    resolved_at = NOW - timedelta(days=days_ago) if resolved else None
    return IssueModel(
        id=issue_id,
        title=issue_id,
        severity=severity,
        status="resolved" if resolved else "open",
        project_id=project,
        assigned_to_id=dev,
        created_at=NOW - timedelta(days=days_ago + 1),
        resolved_at=resolved_at,
        resolution_time=hours,
        fix_quality=3 if resolved else None,
    )


def _sample_issues():
    return [
        _issue("a", "critical", 2.0),
        _issue("b", "critical", 6.0, dev="d2"),
        _issue("c", "low", 10.0, project="p2"),
        _issue("d", "high", None),
        _issue("e", "medium", 30.0, days_ago=60),
    ]


def test_mean_by_severity_fills_empty_groups_with_zero():
    df = issues_to_dataframe(_sample_issues())
    summary = mean_resolution_by(df, "severity", groups=["critical", "high", "medium", "low"])
    assert summary.means["critical"] == pytest.approx(4.0)
    assert summary.means["high"] == 0.0
    assert summary.means["low"] == pytest.approx(10.0)
    assert summary.overall == pytest.approx(12.0)
    assert summary.total == 4


def test_timeframe_filters_on_resolved_at():
    df = issues_to_dataframe(_sample_issues())
    summary = mean_resolution_by(df, "project", start=NOW - timedelta(days=30), end=NOW)
    assert summary.means == {"p1": pytest.approx(4.0), "p2": pytest.approx(10.0)}
    assert summary.total == 3


def test_empty_input_is_zero_not_nan():
    df = issues_to_dataframe([])
    summary = mean_resolution_by(df, "developer", groups=["d1"])
    assert summary.overall == 0.0
    assert summary.means == {"d1": 0.0}


def test_unknown_grouping_is_rejected():
    with pytest.raises(ValidationError):
        mean_resolution_by(issues_to_dataframe([]), "team")


def test_service_time_to_fix_payload():
    repo = InMemoryIssueRepository(
        issues=_sample_issues(),
        developers=[
            DeveloperModel(id="d1", full_name="Ana"),
            DeveloperModel(id="d2", full_name="Ben"),
            DeveloperModel(id="d3", full_name="Cy"),
            DeveloperModel(id="m1", full_name="Mo", role="manager"),
        ],
        projects=[ProjectModel(id="p1", name="Portal"), ProjectModel(id="p2", name="Payments")],
    )
    data = AnalyticsService(repo, clock=lambda: NOW).get_time_to_fix_data()
    assert set(data["by_severity"]) == {"critical", "high", "medium", "low"}
    assert data["by_severity"]["medium"] == pytest.approx(30.0)
    by_dev = {row["developer_id"]: row for row in data["by_developer"]}
    assert set(by_dev) == {"d1", "d2", "d3"}
    assert by_dev["d1"]["total_resolved"] == 3
    assert by_dev["d3"]["avg_time"] == 0.0
    assert data["overall"] == pytest.approx(12.0)
    names = {row["project_name"] for row in data["by_project"]}
    assert names == {"Portal", "Payments"}


def test_service_time_to_fix_filters():
    repo = InMemoryIssueRepository(issues=_sample_issues(), developers=[DeveloperModel(id="d1", full_name="Ana")])
    svc = AnalyticsService(repo, clock=lambda: NOW)
    data = svc.get_time_to_fix_data({"severity": "Critical", "developerId": "d1"})
    assert data["overall"] == pytest.approx(2.0)
    with pytest.raises(ValidationError):
        svc.get_time_to_fix_data({"start": NOW, "end": NOW - timedelta(days=1)})


def test_service_time_to_fix_rejects_malformed_dates():
    svc = AnalyticsService(InMemoryIssueRepository(issues=_sample_issues()), clock=lambda: NOW)
    with pytest.raises(ValidationError):
        svc.get_time_to_fix_data({"startDate": "not-a-date"})
    with pytest.raises(ValidationError):
        svc.get_time_to_fix_data({"end": "31/31/2026x"})


def test_manager_assigned_issues_are_excluded_everywhere():
    issues = _sample_issues() + [_issue("m", "critical", 100.0, dev="m1")]
    repo = InMemoryIssueRepository(
        issues=issues,
        developers=[
            DeveloperModel(id="d1", full_name="Ana"),
            DeveloperModel(id="m1", full_name="Mo", role="manager"),
        ],
    )
    data = AnalyticsService(repo, clock=lambda: NOW).get_time_to_fix_data()
    assert data["by_severity"]["critical"] == pytest.approx(4.0)
    assert data["overall"] == pytest.approx(12.0)
    assert {row["developer_id"] for row in data["by_developer"]} == {"d1"}
