import threading
from datetime import UTC, datetime, timedelta

import pytest

from devpulse_app.analytics.hotspots.detector import (
    RECOMMENDATION_IMMEDIATE,
    RECOMMENDATION_MONITOR,
    RECOMMENDATION_REVIEW,
    HotspotDetector,
    recommendation_for,
    risk_score,
)
from devpulse_app.core.errors import ScanCancelledError
from devpulse_app.core.models import FeatureModel, IssueModel, ProjectModel
from devpulse_app.core.repository import InMemoryIssueRepository
from devpulse_app.core.service import AnalyticsService

NOW = datetime(2026, 10, 1, tzinfo=UTC)


def _bug(issue_id, feature_id, *, days_ago, severity="low", recurring=False, project_id="p1"):
    return IssueModel(
        id=issue_id,
        title=f"Bug {issue_id}",
        severity=severity,
        status="open",
        project_id=project_id,
        feature_id=feature_id,
        created_at=NOW - timedelta(days=days_ago),
        recurrence_count=1 if recurring else 0,
        is_recurring=recurring,
    )


def _hot_feature_bugs():
    # 6 bugs, earliest 3 days ago -> density 2/day; half recurring; 3 critical
    return [
        _bug(f"h{i}", "f1", days_ago=3 if i == 0 else 1, severity="critical" if i < 3 else "low", recurring=i % 2 == 0)
        for i in range(6)
    ]


def _repo(issues, cls=InMemoryIssueRepository):
    return cls(
        issues=issues,
        features=[
            FeatureModel(id="f1", name="Login", project_id="p1"),
            FeatureModel(id="f2", name="Export", project_id="p1"),
            FeatureModel(id="f3", name="Billing", project_id="p2"),
        ],
        projects=[ProjectModel(id="p1", name="Portal"), ProjectModel(id="p2", name="Payments")],
    )


def test_risk_score_formula_and_cap():
    assert risk_score(2.0, 0.5, 3) == pytest.approx(85.0)
    assert risk_score(10.0, 1.0, 10) == 100.0
    assert risk_score(0.0, 0.0, 0) == 0.0


def test_recommendation_thresholds():
    assert recommendation_for(70) == RECOMMENDATION_IMMEDIATE
    assert recommendation_for(69.9) == RECOMMENDATION_REVIEW
    assert recommendation_for(50) == RECOMMENDATION_REVIEW
    assert recommendation_for(30) == RECOMMENDATION_MONITOR
    assert recommendation_for(29.99) is None


def test_hot_feature_is_reported_with_trend_and_recommendation():
    hotspots = HotspotDetector(_repo(_hot_feature_bugs())).detect_hotspots(NOW)
    feature = next(h for h in hotspots if h.type == "feature")
    assert feature.id == "f1"
    assert feature.bug_count == 6
    assert feature.bug_density == pytest.approx(2.0)
    assert feature.recurring_rate == pytest.approx(0.5)
    assert feature.critical_count == 3
    assert feature.risk_score == pytest.approx(85.0)
    assert feature.trend == "increasing"
    assert feature.recommendation == RECOMMENDATION_IMMEDIATE


def test_projects_are_scored_as_aggregates():
    hotspots = HotspotDetector(_repo(_hot_feature_bugs())).detect_hotspots(NOW)
    project = next(h for h in hotspots if h.type == "project")
    assert project.id == "p1"
    assert project.name == "Portal"
    assert project.bug_count == 6


def test_low_risk_and_out_of_window_entities_are_excluded():
    issues = [
        _bug("q1", "f2", days_ago=100),
        _bug("q2", "f3", days_ago=400, severity="critical", project_id="p2"),
    ]
    assert HotspotDetector(_repo(issues)).detect_hotspots(NOW) == []


def test_results_sorted_and_bounded():
    issues = _hot_feature_bugs() + [
        _bug("m1", "f2", days_ago=20, severity="critical", recurring=True),
        _bug("m2", "f2", days_ago=10, severity="critical"),
    ]
    hotspots = HotspotDetector(_repo(issues)).detect_hotspots(NOW)
    scores = [h.risk_score for h in hotspots]
    assert scores == sorted(scores, reverse=True)
    assert all(30 <= s <= 100 for s in scores)


class FlakyRepository(InMemoryIssueRepository):
    def list_issues(self, **filters):
        if filters.get("feature_id") == "f2":
            raise ConnectionError("store unavailable")
        return super().list_issues(**filters)


def test_failed_entity_is_skipped_and_scan_continues():
    issues = _hot_feature_bugs() + [_bug("m1", "f2", days_ago=1, severity="critical")]
    hotspots = HotspotDetector(_repo(issues, FlakyRepository)).detect_hotspots(NOW)
    ids = {(h.type, h.id) for h in hotspots}
    assert ("feature", "f1") in ids
    assert ("feature", "f2") not in ids
    assert ("project", "p1") in ids


def test_cancelled_scan_returns_nothing():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ScanCancelledError):
        HotspotDetector(_repo(_hot_feature_bugs())).detect_hotspots(NOW, cancel_event=cancel)


def test_background_scan_matches_direct_call():
    with AnalyticsService(_repo(_hot_feature_bugs()), clock=lambda: NOW) as svc:
        scan = svc.detect_hotspots_async()
        assert scan.result(timeout=10) == svc.detect_hotspots()
        assert scan.done()


class BlockingRepository(InMemoryIssueRepository):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_issues(self, **filters):
        self.entered.set()
        self.release.wait(timeout=10)
        return super().list_issues(**filters)


def test_cancelling_background_scan_discards_result():
    repo = _repo(_hot_feature_bugs(), BlockingRepository)
    with AnalyticsService(repo, clock=lambda: NOW) as svc:
        scan = svc.detect_hotspots_async()
        assert repo.entered.wait(timeout=10)
        scan.cancel()
        repo.release.set()
        assert scan.cancelled()
        with pytest.raises(ScanCancelledError):
            scan.result(timeout=10)
