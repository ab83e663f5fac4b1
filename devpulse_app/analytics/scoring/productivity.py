"""Developer productivity scoring (pure functions over issue DataFrames)."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from devpulse_app.core.config import ACTIVE_STATUSES, DEFAULT_FIX_QUALITY, HOURS_PER_DAY, RESOLVED_STATUSES
from devpulse_app.core.models import DeveloperModel, ProductivityScore, Timeframe
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights


def in_range(series: pd.Series, timeframe: Timeframe) -> pd.Series:
    ts = pd.to_datetime(series, utc=True, errors="coerce")
    return ts.notna() & (ts >= pd.Timestamp(timeframe.start)) & (ts <= pd.Timestamp(timeframe.end))


def resolved_in_timeframe(df: pd.DataFrame, developer_id: str, timeframe: Timeframe) -> pd.DataFrame:
    if df.empty:
        return df
    mask = (
        (df["assigned_to_id"] == developer_id)
        & df["status"].isin(RESOLVED_STATUSES)
        & in_range(df["resolved_at"], timeframe)
    )
    return df[mask]


def active_in_timeframe(df: pd.DataFrame, developer_id: str, timeframe: Timeframe) -> pd.DataFrame:
    """Open and in-progress issues assigned to the developer, created within the timeframe."""
    if df.empty:
        return df
    mask = (
        (df["assigned_to_id"] == developer_id)
        & df["status"].isin(ACTIVE_STATUSES)
        & in_range(df["created_at"], timeframe)
    )
    return df[mask]


def weighted_output(resolved: pd.DataFrame, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Sum of severity weight times fix quality over resolved issues."""
    if resolved.empty:
        return 0.0
    severity = resolved["severity"].map(weights.severity_weight).astype(float)
    quality = resolved["fix_quality"].fillna(DEFAULT_FIX_QUALITY).astype(float)
    return float((severity * quality).sum())


def score_developer(
    developer: DeveloperModel,
    df: pd.DataFrame,
    timeframe: Timeframe,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ProductivityScore:
    """Compute the productivity record for one (non-manager) developer.

    ``score = sum(severity_weight * fix_quality) / max(resolution_days, 1) * 10``

    Developers with nothing resolved in range get an all-zero record.
    """
    resolved = resolved_in_timeframe(df, developer.id, timeframe)
    active = active_in_timeframe(df, developer.id, timeframe)
    result = ProductivityScore(developer_id=developer.id, developer_name=developer.full_name)
    result.open_count = int((active["status"] == "open").sum()) if not active.empty else 0
    result.in_progress_count = int((active["status"] == "in_progress").sum()) if not active.empty else 0
    if resolved.empty:
        return result

    hours = resolved["resolution_time"].fillna(0.0).astype(float)
    total_days = float(hours.sum()) / HOURS_PER_DAY
    quality = resolved["fix_quality"].dropna()

    result.resolved_count = int(len(resolved))
    result.productivity_score = (
        weighted_output(resolved, weights) / max(total_days, weights.min_resolution_days) * weights.productivity_multiplier
    )
    result.avg_resolution_time = float(hours.mean())
    result.avg_fix_quality = float(quality.mean()) if not quality.empty else 0.0
    result.recurring_count = int(resolved["is_recurring"].sum())
    denominator = result.resolved_count + result.open_count + result.in_progress_count
    result.completion_rate = result.resolved_count / denominator if denominator else 0.0
    return result


def rank_developers(
    developers: Iterable[DeveloperModel],
    df: pd.DataFrame,
    timeframe: Timeframe,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[ProductivityScore]:
    """Score every non-manager developer, best first.

    Ties fall back to resolved count (descending), then developer id.
    """
    scores = [score_developer(dev, df, timeframe, weights) for dev in developers if not dev.is_manager]
    return sorted(scores, key=lambda s: (-s.productivity_score, -s.resolved_count, s.developer_id))
