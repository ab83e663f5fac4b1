"""AnalyticsService: the engine's single entry point.

Every public method is a request -> response operation over a repository
snapshot. Only ``detect_recurrence`` writes (through the repository's
transactional link). Transport concerns live in ``devpulse_app.app``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from datetime import datetime
from typing import Any

import pandas as pd

from devpulse_app.analytics.hotspots.detector import HotspotDetector
from devpulse_app.analytics.metrics.quality import quality_trend
from devpulse_app.analytics.metrics.time_to_fix import mean_resolution_by
from devpulse_app.analytics.metrics.velocity import VelocityTrend, compute_velocity
from devpulse_app.analytics.recurrence.analysis import developer_recurrence, monthly_recurrence
from devpulse_app.analytics.recurrence.linker import RecurrenceLinker
from devpulse_app.analytics.scoring.performance import (
    developer_detail,
    reopened_issues,
    resolution_breakdown,
    skills_utilization,
    team_comparison,
    workload_distribution,
)
from devpulse_app.analytics.scoring.productivity import rank_developers, score_developer
from devpulse_app.analytics.scoring.projects import compare_projects, dashboard_stats
from devpulse_app.analytics.scoring.stability import score_features

from .config import (
    ACTIVE_STATUSES,
    DEFAULT_HOTSPOT_WINDOW_DAYS,
    DEFAULT_PRODUCTIVITY_WEEKS,
    DEFAULT_RECURRENCE_LOOKBACK_DAYS,
    DEFAULT_RECURRENCE_MONTHS,
    DEFAULT_VELOCITY_WEEKS,
    HOTSPOT_SCAN_MAX_WORKERS,
    SEVERITY_ORDER,
)
from .errors import AnalyticsError, NotApplicableError, NotFoundError, RepositoryError, ScanCancelledError, ValidationError
from .mappers import issues_to_dataframe
from .models import DeveloperModel, FeatureStability, Hotspot, ProductivityScore, RecurrenceResult
from .repository import IssueRepository
from .scoring_config import ScoringWeights, load_scoring_weights
from .status import normalize_severity
from .timestamps import coerce_timeframe, parse_bound, utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class HotspotScan:
    """Handle for a hotspot scan running off the caller's thread."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self._future = future
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Discard the scan. Any in-flight result is dropped, never surfaced."""
        self._cancel_event.set()
        self._future.cancel()

    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> list[Hotspot]:
        if self._cancel_event.is_set():
            raise ScanCancelledError("Hotspot scan cancelled")
        try:
            hotspots = self._future.result(timeout=timeout)
        except CancelledError as exc:
            raise ScanCancelledError("Hotspot scan cancelled") from exc
        if self._cancel_event.is_set():
            raise ScanCancelledError("Hotspot scan cancelled")
        return hotspots


class AnalyticsService:
    def __init__(
        self,
        repository: IssueRepository,
        *,
        weights: ScoringWeights | None = None,
        clock: Clock = utc_now,
        recurrence_lookback_days: int = DEFAULT_RECURRENCE_LOOKBACK_DAYS,
        hotspot_window_days: int = DEFAULT_HOTSPOT_WINDOW_DAYS,
    ):
        self.repository = repository
        self.weights = weights or load_scoring_weights()
        self.clock = clock
        self.linker = RecurrenceLinker(repository, lookback_days=recurrence_lookback_days)
        self.hotspots = HotspotDetector(repository, window_days=hotspot_window_days, weights=self.weights)
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    # ------------------ Lifecycle ------------------
    def close(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def __enter__(self) -> AnalyticsService:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------ Productivity ------------------
    def get_productivity_score(self, developer_id: str, timeframe: Any = None) -> ProductivityScore:
        developer = self._require_developer(developer_id)
        if developer.is_manager:
            raise NotApplicableError(
                f"Developer {developer_id} is a manager and has no productivity score",
                details={"developer_id": developer_id},
            )
        frame = self._default_timeframe(timeframe)
        df = self._issue_frame(assigned_to_id=developer_id)
        return score_developer(developer, df, frame, self.weights)

    def get_productivity_rankings(self, timeframe: Any = None) -> list[ProductivityScore]:
        frame = self._default_timeframe(timeframe)
        developers = self._read(self.repository.list_developers)
        return rank_developers(developers, self._issue_frame(), frame, self.weights)

    def get_velocity_trend(self, developer_id: str, weeks: int = DEFAULT_VELOCITY_WEEKS, timeframe: Any = None) -> VelocityTrend:
        if weeks <= 0:
            raise ValidationError(f"weeks must be positive, got {weeks}", details={"field": "weeks"})
        developer = self._require_developer(developer_id)
        frame = coerce_timeframe(timeframe, default_days=weeks * 7, now=self.clock())
        resolved = self._read(
            lambda: self.repository.list_issues(assigned_to_id=developer.id, resolved_between=frame)
        )
        return compute_velocity(issues_to_dataframe(resolved), frame)

    # ------------------ Developer Performance ------------------
    def get_developer_detail(self, developer_id: str, timeframe: Any = None) -> dict[str, Any]:
        developer = self._require_developer(developer_id)
        frame = self._default_timeframe(timeframe)
        return developer_detail(developer, self._issue_frame(assigned_to_id=developer.id), frame, self.weights)

    def get_resolution_time_breakdown(self, developer_id: str, timeframe: Any = None) -> dict[str, list[dict]]:
        developer = self._require_developer(developer_id)
        frame = self._default_timeframe(timeframe)
        df = self._issue_frame(assigned_to_id=developer.id)
        return resolution_breakdown(df, developer.id, frame, self._project_names())

    def get_skills_utilization(self, developer_id: str, timeframe: Any = None) -> dict[str, Any]:
        developer = self._require_developer(developer_id)
        frame = self._default_timeframe(timeframe)
        projects = {p.id: p for p in self._read(self.repository.list_projects)}
        return skills_utilization(developer, self._issue_frame(assigned_to_id=developer.id), frame, projects)

    def get_reopened_issues(self, developer_id: str, timeframe: Any = None) -> list[dict]:
        developer = self._require_developer(developer_id)
        frame = self._default_timeframe(timeframe)
        features = {f.id: f.name for f in self._read(self.repository.list_features)}
        df = self._issue_frame(assigned_to_id=developer.id)
        return reopened_issues(df, developer.id, frame, self._project_names(), features)

    def get_quality_trend(self, developer_id: str, weeks: int = DEFAULT_VELOCITY_WEEKS, timeframe: Any = None) -> list[dict]:
        if weeks <= 0:
            raise ValidationError(f"weeks must be positive, got {weeks}", details={"field": "weeks"})
        developer = self._require_developer(developer_id)
        frame = coerce_timeframe(timeframe, default_days=weeks * 7, now=self.clock())
        rated = self._read(
            lambda: self.repository.list_issues(assigned_to_id=developer.id, resolved_between=frame)
        )
        return quality_trend(issues_to_dataframe(rated), frame)

    def get_workload_distribution(self, developer_id: str | None = None) -> dict | list[dict]:
        """Active workload for one developer, or the whole team when no id is given."""
        if developer_id is not None:
            developer_id = self._require_developer(developer_id).id
        developers = self._read(self.repository.list_developers)
        df = self._issue_frame(assigned_to_id=developer_id, statuses=ACTIVE_STATUSES)
        return workload_distribution(df, developers, self._project_names(), developer_id)

    def get_team_comparison(self, developer_id: str, timeframe: Any = None) -> dict[str, Any]:
        developer = self._require_developer(developer_id)
        frame = self._default_timeframe(timeframe)
        developers = self._read(self.repository.list_developers)
        return team_comparison(developers, self._issue_frame(), developer.id, frame)

    # ------------------ Recurrence ------------------
    def detect_recurrence(self, issue_id: str) -> RecurrenceResult:
        self._require_id(issue_id, "issue_id")
        return self.linker.detect_recurrence(issue_id)

    def get_recurrence_analysis(self, months: int = DEFAULT_RECURRENCE_MONTHS) -> dict[str, list[dict]]:
        if months <= 0:
            raise ValidationError(f"months must be positive, got {months}", details={"field": "months"})
        df = self._issue_frame()
        developers = self._read(self.repository.list_developers)
        return {
            "monthly_trends": monthly_recurrence(df, self.clock(), months),
            "developer_recurrence": developer_recurrence(df, developers),
        }

    # ------------------ Stability & Hotspots ------------------
    def get_feature_stability(self, project_id: str | None = None) -> list[FeatureStability]:
        if project_id is not None:
            self._require_id(project_id, "project_id")
            if self._read(lambda: self.repository.get_project(project_id)) is None:
                raise NotFoundError(f"Project {project_id} not found", details={"project_id": project_id})
        features = self._read(lambda: self.repository.list_features(project_id))
        projects = {p.id: p for p in self._read(self.repository.list_projects)}
        df = self._issue_frame(project_id=project_id)
        return score_features(features, df, projects, self.weights)

    def detect_hotspots(self, *, cancel_event: threading.Event | None = None) -> list[Hotspot]:
        return self.hotspots.detect_hotspots(self.clock(), cancel_event=cancel_event)

    def detect_hotspots_async(self) -> HotspotScan:
        """Start a hotspot scan in the background and return its handle."""
        cancel_event = threading.Event()
        future = self._get_executor().submit(self.detect_hotspots, cancel_event=cancel_event)
        return HotspotScan(future, cancel_event)

    # ------------------ Time to Fix ------------------
    def get_time_to_fix_data(self, filters: dict[str, Any] | None = None) -> dict[str, Any]:
        filters = dict(filters or {})
        project_id = filters.get("project_id", filters.get("projectId"))
        developer_id = filters.get("developer_id", filters.get("developerId"))
        severity = filters.get("severity")
        start = parse_bound(filters.get("start", filters.get("startDate")), "start")
        end = parse_bound(filters.get("end", filters.get("endDate")), "end")
        if start is not None and end is not None and start > end:
            raise ValidationError("Timeframe start is after its end")

        df = self._issue_frame(project_id=project_id, assigned_to_id=developer_id)
        if severity is not None and not df.empty:
            df = df[df["severity"] == normalize_severity(severity)]
        # Manager-assigned work is left out of every breakdown, not only by_developer
        all_developers = self._read(self.repository.list_developers)
        managers = {d.id for d in all_developers if d.is_manager}
        df = df[~df["assigned_to_id"].isin(managers)]

        by_severity = mean_resolution_by(df, "severity", start=start, end=end, groups=SEVERITY_ORDER)
        developers = [d for d in all_developers if not d.is_manager]
        if developer_id is not None:
            developers = [d for d in developers if d.id == developer_id]
        by_developer = mean_resolution_by(df, "developer", start=start, end=end, groups=[d.id for d in developers])
        by_project = mean_resolution_by(df, "project", start=start, end=end)
        project_names = self._project_names()
        return {
            "by_severity": {sev: by_severity.means[sev] for sev in SEVERITY_ORDER},
            "p90_by_severity": {sev: by_severity.p90[sev] for sev in SEVERITY_ORDER},
            "by_developer": [
                {
                    "developer_id": dev.id,
                    "developer_name": dev.full_name,
                    "avg_time": by_developer.means[dev.id],
                    "total_resolved": by_developer.counts[dev.id],
                }
                for dev in developers
            ],
            "by_project": [
                {
                    "project_id": pid,
                    "project_name": project_names.get(pid),
                    "avg_time": avg,
                    "count": by_project.counts[pid],
                }
                for pid, avg in by_project.means.items()
            ],
            "overall": by_severity.overall,
        }

    # ------------------ Portfolio ------------------
    def get_dashboard_stats(self) -> dict[str, Any]:
        return dashboard_stats(self._issue_frame())

    def get_project_comparison(self) -> list[dict]:
        projects = self._read(self.repository.list_projects)
        return compare_projects(projects, self._issue_frame(), self.weights)

    # ------------------ Internal Helpers ------------------
    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=HOTSPOT_SCAN_MAX_WORKERS, thread_name_prefix="hotspot-scan"
                )
            return self._executor

    @staticmethod
    def _require_id(value: Any, field_name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid {field_name}: {value!r}", details={"field": field_name})
        return value

    def _default_timeframe(self, timeframe: Any):
        return coerce_timeframe(timeframe, default_days=DEFAULT_PRODUCTIVITY_WEEKS * 7, now=self.clock())

    def _project_names(self) -> dict[str, str]:
        return {p.id: p.name for p in self._read(self.repository.list_projects)}

    def _require_developer(self, developer_id: str) -> DeveloperModel:
        self._require_id(developer_id, "developer_id")
        developer = self._read(lambda: self.repository.get_developer(developer_id))
        if developer is None:
            raise NotFoundError(f"Developer {developer_id} not found", details={"developer_id": developer_id})
        return developer

    def _issue_frame(self, **filters: Any) -> pd.DataFrame:
        filters = {k: v for k, v in filters.items() if v is not None}
        return issues_to_dataframe(self._read(lambda: self.repository.list_issues(**filters)))

    @staticmethod
    def _read(fetch: Callable[[], Any]) -> Any:
        try:
            return fetch()
        except AnalyticsError:
            raise
        except Exception as exc:
            logger.error("Issue store read failed: %s", exc)
            raise RepositoryError(f"Issue store read failed: {exc}") from exc
