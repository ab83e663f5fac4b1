"""Rule-based bug hotspot detection for features and projects.

Every feature (and every project, as an aggregate) with at least one bug in
the trailing window gets a 0-100 risk score from its bug density, recurrence
rate, and critical bug count. Entities under the monitoring threshold are
dropped; the rest carry a trend and a recommendation.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

import pandas as pd

from devpulse_app.analytics.metrics.trend import classify_trend, weekly_counts
from devpulse_app.core.config import DEFAULT_HOTSPOT_WINDOW_DAYS, SECONDS_PER_DAY, SETTINGS
from devpulse_app.core.errors import AnalyticsError, RepositoryError, ScanCancelledError
from devpulse_app.core.mappers import issues_to_dataframe
from devpulse_app.core.models import Hotspot, IssueModel, Timeframe
from devpulse_app.core.repository import IssueRepository
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights
from devpulse_app.core.timestamps import utc_now

logger = logging.getLogger(__name__)

RECOMMENDATION_IMMEDIATE = "Immediate refactor/triage recommended"
RECOMMENDATION_REVIEW = "Schedule focused review this sprint"
RECOMMENDATION_MONITOR = "Monitor; add regression tests"


def risk_score(
    bug_density: float,
    recurring_rate: float,
    critical_bugs: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """``min(100, density*20 + recurring_rate*30 + critical*10)``, never below 0.

    >>> risk_score(2.0, 0.5, 3)
    85.0
    """
    raw = (
        bug_density * weights.risk_density_weight
        + recurring_rate * weights.risk_recurring_weight
        + critical_bugs * weights.risk_critical_weight
    )
    return float(min(100.0, max(0.0, raw)))


def recommendation_for(score: float, weights: ScoringWeights = DEFAULT_WEIGHTS) -> str | None:
    """Threshold text for a risk score, or None when it is not actionable."""
    if score >= weights.risk_immediate_threshold:
        return RECOMMENDATION_IMMEDIATE
    if score >= weights.risk_review_threshold:
        return RECOMMENDATION_REVIEW
    if score >= weights.risk_monitor_threshold:
        return RECOMMENDATION_MONITOR
    return None


def assess_entity(
    entity_id: str,
    name: str,
    entity_type: str,
    bugs: pd.DataFrame,
    window: Timeframe,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Hotspot | None:
    """Score one entity from its bugs created inside ``window``.

    Returns None when the entity has no bugs in the window or its risk falls
    under the monitoring threshold.
    """
    if bugs.empty:
        return None
    created = pd.to_datetime(bugs["created_at"], utc=True, errors="coerce")
    in_window = created.notna() & (created >= pd.Timestamp(window.start)) & (created <= pd.Timestamp(window.end))
    bugs = bugs[in_window]
    created = created[in_window]
    if bugs.empty:
        return None

    total = int(len(bugs))
    recurring = int(bugs["is_recurring"].sum())
    critical = int((bugs["severity"] == "critical").sum())
    age_days = max((pd.Timestamp(window.end) - created.min()).total_seconds() / SECONDS_PER_DAY, 1.0)
    density = total / age_days
    rate = recurring / max(total, 1)
    score = risk_score(density, rate, critical, weights)
    text = recommendation_for(score, weights)
    if text is None:
        logger.debug("%s %s below hotspot threshold (risk %.1f)", entity_type, entity_id, score)
        return None
    trend = classify_trend(
        weekly_counts(created, window.start, window.end),
        increase_ratio=weights.trend_increase_ratio,
        decrease_ratio=weights.trend_decrease_ratio,
    )
    digits = SETTINGS.result_precision
    return Hotspot(
        id=entity_id,
        name=name,
        type=entity_type,
        bug_count=total,
        bug_density=round(density, digits),
        recurring_rate=round(rate, digits),
        critical_count=critical,
        risk_score=round(score, digits),
        trend=trend,
        recommendation=text,
    )


class HotspotDetector:
    def __init__(
        self,
        repository: IssueRepository,
        *,
        window_days: int = DEFAULT_HOTSPOT_WINDOW_DAYS,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.repository = repository
        self.window_days = window_days
        self.weights = weights

    def detect_hotspots(
        self,
        now: datetime | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[Hotspot]:
        """Scan all features and projects, riskiest first.

        A failure while loading or scoring one entity is logged and that entity
        is skipped; the scan still returns the others. When ``cancel_event`` is
        set the scan stops with ScanCancelledError and returns nothing.
        """
        end = now or utc_now()
        window = Timeframe(start=end - timedelta(days=self.window_days), end=end)
        try:
            features = self.repository.list_features()
            projects = self.repository.list_projects()
        except AnalyticsError:
            raise
        except Exception as exc:
            raise RepositoryError(f"Could not list hotspot candidates: {exc}") from exc

        entities: list[tuple[str, str, str, Callable[[], list[IssueModel]]]] = []
        for feature in features:
            entities.append(
                (
                    feature.id,
                    feature.name,
                    "feature",
                    lambda fid=feature.id: self.repository.list_issues(feature_id=fid, created_between=window),
                )
            )
        for project in projects:
            entities.append(
                (
                    project.id,
                    project.name,
                    "project",
                    lambda pid=project.id: self.repository.list_issues(project_id=pid, created_between=window),
                )
            )

        hotspots: list[Hotspot] = []
        failed = 0
        for entity_id, name, entity_type, load in entities:
            if cancel_event is not None and cancel_event.is_set():
                raise ScanCancelledError("Hotspot scan cancelled")
            try:
                bugs = issues_to_dataframe(load())
                hotspot = assess_entity(entity_id, name, entity_type, bugs, window, self.weights)
            except Exception as exc:
                failed += 1
                logger.warning("Skipping %s %s in hotspot scan: %s", entity_type, entity_id, exc)
                continue
            if hotspot is not None:
                hotspots.append(hotspot)
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError("Hotspot scan cancelled")
        if failed:
            logger.warning("Hotspot scan finished with %s skipped entities", failed)
        logger.info("Found %s hotspots across %s entities", len(hotspots), len(entities))
        return sorted(hotspots, key=lambda h: (-h.risk_score, h.type, h.id))
