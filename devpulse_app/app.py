"""Operation registry and dispatcher.

Channels map request names to AnalyticsService calls. The transport (IPC,
HTTP, direct call) only needs ``dispatch``; results come back as plain
dictionaries with a ``success`` flag.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any

from devpulse_app.core.errors import AnalyticsError
from devpulse_app.core.service import AnalyticsService

logger = logging.getLogger(__name__)

OPERATIONS: dict[str, Callable[..., Any]] = {}


def register_operation(channel):
    def decorator(func):
        OPERATIONS[channel] = func
        return func

    return decorator


def to_plain(value: Any) -> Any:
    """Convert dataclasses, datetimes, and containers into JSON-friendly values."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_plain(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@register_operation("analytics:getProductivityScore")
def _productivity_score(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_productivity_score(developer_id, timeframe)


@register_operation("analytics:getProductivityRankings")
def _productivity_rankings(service: AnalyticsService, timeframe=None):
    return service.get_productivity_rankings(timeframe)


@register_operation("issues:detectRecurrence")
def _detect_recurrence(service: AnalyticsService, issue_id: str):
    return service.detect_recurrence(issue_id)


@register_operation("analytics:getFeatureStability")
def _feature_stability(service: AnalyticsService, project_id: str | None = None):
    return service.get_feature_stability(project_id)


@register_operation("ml:detectHotspots")
def _detect_hotspots(service: AnalyticsService):
    return service.detect_hotspots()


@register_operation("analytics:getTimeToFixData")
def _time_to_fix(service: AnalyticsService, filters: dict | None = None):
    return service.get_time_to_fix_data(filters)


@register_operation("analytics:getRecurrenceAnalysis")
def _recurrence_analysis(service: AnalyticsService):
    return service.get_recurrence_analysis()


@register_operation("analytics:getDashboardStats")
def _dashboard_stats(service: AnalyticsService):
    return service.get_dashboard_stats()


@register_operation("analytics:getProjectComparison")
def _project_comparison(service: AnalyticsService):
    return service.get_project_comparison()


@register_operation("performance:getVelocityTrend")
def _velocity_trend(service: AnalyticsService, developer_id: str, weeks: int = 12, timeframe=None):
    return service.get_velocity_trend(developer_id, weeks, timeframe)


@register_operation("performance:getDeveloperDetail")
def _developer_detail(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_developer_detail(developer_id, timeframe)


@register_operation("performance:getResolutionTimeBreakdown")
def _resolution_breakdown(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_resolution_time_breakdown(developer_id, timeframe)


@register_operation("performance:getSkillsUtilization")
def _skills_utilization(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_skills_utilization(developer_id, timeframe)


@register_operation("performance:getReopenedIssues")
def _reopened_issues(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_reopened_issues(developer_id, timeframe)


@register_operation("performance:getQualityTrend")
def _quality_trend(service: AnalyticsService, developer_id: str, weeks: int = 12, timeframe=None):
    return service.get_quality_trend(developer_id, weeks, timeframe)


@register_operation("performance:getWorkloadDistribution")
def _workload_distribution(service: AnalyticsService, developer_id: str | None = None):
    return service.get_workload_distribution(developer_id)


@register_operation("performance:getTeamComparison")
def _team_comparison(service: AnalyticsService, developer_id: str, timeframe=None):
    return service.get_team_comparison(developer_id, timeframe)

def dispatch(service: AnalyticsService, channel: str, *args, **kwargs) -> dict[str, Any]:
    handler = OPERATIONS.get(channel)
    if handler is None:
        return {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": f"Unknown operation: {channel}"},
        }
    try:
        inspect.signature(handler).bind(service, *args, **kwargs)
    except TypeError as exc:
        logger.error("Operation %s called with bad arguments: %s", channel, exc)
        return {"success": False, "error": {"code": "VALIDATION", "message": str(exc)}}
    try:
        result = handler(service, *args, **kwargs)
    except AnalyticsError as exc:
        logger.error("Operation %s failed: %s", channel, exc)
        return {"success": False, "error": exc.to_dict()}
    return {"success": True, "data": to_plain(result)}
