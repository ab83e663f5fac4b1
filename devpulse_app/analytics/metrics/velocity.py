"""Weekly resolution velocity for a developer."""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

from devpulse_app.core.config import VELOCITY_ROLLING_WEEKS
from devpulse_app.core.models import Timeframe

from .trend import classify_trend, weekly_counts


@dataclass(slots=True)
class VelocityTrend:
    weekly_resolved: list[int] = field(default_factory=list)
    current_velocity: float = 0.0
    total_resolved: int = 0
    trend: str = "stable"


def compute_velocity(df: pd.DataFrame, timeframe: Timeframe, *, rolling_weeks: int = VELOCITY_ROLLING_WEEKS) -> VelocityTrend:
    if df.empty:
        counts = weekly_counts([], timeframe.start, timeframe.end)
    else:
        counts = weekly_counts(df["resolved_at"].dropna(), timeframe.start, timeframe.end)
    window = counts[-rolling_weeks:] if len(counts) >= rolling_weeks else counts
    velocity = sum(window) / len(window) if window else 0.0
    return VelocityTrend(
        weekly_resolved=counts,
        current_velocity=round(velocity, 1),
        total_resolved=int(sum(counts)),
        trend=classify_trend(counts),
    )
