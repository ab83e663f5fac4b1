"""Trend classification over bucketed count series (pure functions)."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

import pandas as pd

from devpulse_app.core.config import SECONDS_PER_DAY, TREND_BUCKET_DAYS
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS

INCREASING = "increasing"
STABLE = "stable"
DECREASING = "decreasing"

EPSILON = 1e-9


def classify_trend(
    counts: Sequence[float],
    *,
    increase_ratio: float = DEFAULT_WEIGHTS.trend_increase_ratio,
    decrease_ratio: float = DEFAULT_WEIGHTS.trend_decrease_ratio,
) -> str:
    """Classify an ordered count series as increasing, stable, or decreasing.

    The series is split into an older and a newer half (for odd lengths the
    middle bucket belongs to the newer half) and the newer sum is compared to
    the older one.

    Parameters
    ----------
    counts : Sequence[float]
        Counts per equal time window, oldest first.

    Returns
    -------
    str
        ``"increasing"`` when newer/older > increase_ratio, ``"decreasing"``
        when below decrease_ratio, otherwise ``"stable"``. Fewer than two
        buckets, or a series with no counts at all, is always ``"stable"``.

    Examples
    --------
    >>> classify_trend([1, 1, 3, 3])
    'increasing'
    >>> classify_trend([])
    'stable'
    """
    values = [float(c) for c in counts]
    if len(values) < 2:
        return STABLE
    half = len(values) // 2
    older = sum(values[:half])
    newer = sum(values[half:])
    if older == 0 and newer == 0:
        return STABLE
    ratio = newer / max(older, EPSILON)
    if ratio > increase_ratio:
        return INCREASING
    if ratio < decrease_ratio:
        return DECREASING
    return STABLE


def weekly_counts(
    timestamps: Iterable[datetime] | pd.Series,
    start: datetime,
    end: datetime,
    *,
    bucket_days: int = TREND_BUCKET_DAYS,
) -> list[int]:
    """Count timestamps per equal-width bucket between ``start`` and ``end``.

    Buckets are anchored at ``end`` and walk backwards, so the newest bucket
    is always a full window; the oldest one may be partial. Timestamps outside
    ``[start, end]`` are ignored. Result is oldest first and zero-filled.
    """
    span_days = max((end - start).total_seconds() / SECONDS_PER_DAY, 0.0)
    n_buckets = max(int(-(-span_days // bucket_days)), 1)
    series = pd.to_datetime(pd.Series(list(timestamps), dtype=object), utc=True, errors="coerce").dropna()
    start_ts = pd.Timestamp(start)
    end_ts = pd.Timestamp(end)
    series = series[(series >= start_ts) & (series <= end_ts)]
    counts = [0] * n_buckets
    if series.empty:
        return counts
    width = pd.Timedelta(days=bucket_days)
    offsets = ((end_ts - series) // width).astype(int)
    for offset in offsets:
        idx = n_buckets - 1 - min(int(offset), n_buckets - 1)
        counts[idx] += 1
    return counts
