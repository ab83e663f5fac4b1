"""Time-to-fix aggregation (pure functions over issue DataFrames)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np
import pandas as pd

from devpulse_app.core.errors import ValidationError

GROUP_COLUMNS: dict[str, str] = {
    "severity": "severity",
    "developer": "assigned_to_id",
    "project": "project_id",
}


@dataclass(slots=True)
class TimeToFixSummary:
    key: str
    means: dict[str, float] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    p90: dict[str, float] = field(default_factory=dict)
    overall: float = 0.0
    total: int = 0


def _p90(values: pd.Series) -> float:
    arr = values.dropna().to_numpy()
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, 90))


def filter_resolved(df: pd.DataFrame, start: datetime | None = None, end: datetime | None = None) -> pd.DataFrame:
    """Keep issues with a resolution time, optionally within ``[start, end]`` on resolved_at."""
    if df.empty or "resolution_time" not in df.columns:
        return df.iloc[0:0]
    out = df[df["resolution_time"].notna()]
    if start is not None or end is not None:
        resolved = pd.to_datetime(out["resolved_at"], utc=True, errors="coerce")
        mask = resolved.notna()
        if start is not None:
            mask &= resolved >= pd.Timestamp(start)
        if end is not None:
            mask &= resolved <= pd.Timestamp(end)
        out = out[mask]
    return out


def mean_resolution_by(
    df: pd.DataFrame,
    key: str,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    groups: Sequence[str] | None = None,
) -> TimeToFixSummary:
    """Mean resolution hours per group plus the overall mean.

    Parameters
    ----------
    df : pd.DataFrame
        Issue frame as produced by ``issues_to_dataframe``.
    key : str
        One of ``severity``, ``developer``, ``project``.
    start, end : datetime, optional
        Inclusive bounds on ``resolved_at``.
    groups : Sequence[str], optional
        Groups that must appear in the result even with no matching issues
        (reported as 0).

    Returns
    -------
    TimeToFixSummary
        Means never contain NaN; empty groups and empty input resolve to 0.
    """
    column = GROUP_COLUMNS.get(key)
    if column is None:
        raise ValidationError(f"Unknown time-to-fix grouping: {key!r}", details={"field": "key"})
    if start is not None and end is not None and start > end:
        raise ValidationError("Timeframe start is after its end")
    matched = filter_resolved(df, start, end)
    summary = TimeToFixSummary(key=key)
    if not matched.empty:
        grouped = matched.dropna(subset=[column]).groupby(column)["resolution_time"].agg(["mean", "count", _p90])
        summary.means = {str(idx): float(row["mean"]) for idx, row in grouped.iterrows()}
        summary.counts = {str(idx): int(row["count"]) for idx, row in grouped.iterrows()}
        summary.p90 = {str(idx): float(row["_p90"]) for idx, row in grouped.iterrows()}
        summary.total = int(len(matched))
        summary.overall = float(matched["resolution_time"].mean())
    for group in groups or ():
        summary.means.setdefault(group, 0.0)
        summary.counts.setdefault(group, 0)
        summary.p90.setdefault(group, 0.0)
    return summary
