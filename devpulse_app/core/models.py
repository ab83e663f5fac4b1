"""Domain data models for issues, developers, features, and projects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class IssueModel:
    id: str
    title: str
    severity: str
    status: str
    project_id: str
    created_at: datetime
    feature_id: str | None = None
    assigned_to_id: str | None = None
    resolved_at: datetime | None = None
    resolution_time: float | None = None  # hours
    fix_quality: int | None = None
    is_recurring: bool = False
    recurrence_count: int = 0
    parent_issue_id: str | None = None
    child_issue_ids: list[str] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.status in ("resolved", "closed")


@dataclass(slots=True)
class DeveloperModel:
    id: str
    full_name: str
    skills: frozenset[str] = frozenset()
    seniority_level: str = "mid"
    role: str = "developer"

    @property
    def is_manager(self) -> bool:
        return self.role == "manager"


@dataclass(slots=True)
class FeatureModel:
    id: str
    name: str
    project_id: str
    created_at: datetime | None = None


@dataclass(slots=True)
class ProjectModel:
    id: str
    name: str
    status: str | None = None
    project_type: str | None = None


@dataclass(frozen=True, slots=True)
class Timeframe:
    start: datetime
    end: datetime

    def contains(self, ts: datetime | None) -> bool:
        if ts is None:
            return False
        return self.start <= ts <= self.end


# Derived results (populated by the analytics layer)


@dataclass(slots=True)
class ProductivityScore:
    developer_id: str
    developer_name: str
    productivity_score: float = 0.0
    resolved_count: int = 0
    avg_resolution_time: float = 0.0
    avg_fix_quality: float = 0.0
    recurring_count: int = 0
    completion_rate: float = 0.0
    open_count: int = 0
    in_progress_count: int = 0


@dataclass(slots=True)
class FeatureStability:
    feature_id: str
    feature_name: str
    project_name: str | None
    stability_score: float
    total_bugs: int
    recurring_bugs: int
    critical_bugs: int
    high_bugs: int = 0
    medium_bugs: int = 0
    low_bugs: int = 0


@dataclass(slots=True)
class Hotspot:
    id: str
    name: str
    type: str
    bug_count: int
    bug_density: float
    recurring_rate: float
    critical_count: int
    risk_score: float
    trend: str
    recommendation: str


@dataclass(frozen=True, slots=True)
class RecurrenceResult:
    linked: bool
    parent_issue_id: str | None = None
