"""Weekly fix-quality trend for a developer."""

from __future__ import annotations

import pandas as pd

from devpulse_app.core.config import TREND_BUCKET_DAYS
from devpulse_app.core.models import Timeframe


def quality_trend(df: pd.DataFrame, timeframe: Timeframe, *, bucket_days: int = TREND_BUCKET_DAYS) -> list[dict]:
    """Average fix quality per week over issues resolved inside ``timeframe``.

    Weeks are anchored at the timeframe end like ``weekly_counts``. Only weeks
    with at least one rated fix are returned, oldest first; ``week_start`` is
    clamped to the timeframe start for the partial oldest week.
    """
    if df.empty:
        return []
    resolved_at = pd.to_datetime(df["resolved_at"], utc=True, errors="coerce")
    start_ts = pd.Timestamp(timeframe.start)
    end_ts = pd.Timestamp(timeframe.end)
    mask = resolved_at.notna() & df["fix_quality"].notna() & (resolved_at >= start_ts) & (resolved_at <= end_ts)
    if not mask.any():
        return []
    width = pd.Timedelta(days=bucket_days)
    rated = pd.DataFrame(
        {
            "offset": ((end_ts - resolved_at[mask]) // width).astype(int),
            "fix_quality": df.loc[mask, "fix_quality"].astype(float),
        }
    )
    grouped = rated.groupby("offset")["fix_quality"].agg(["mean", "count"])
    rows = []
    for offset, stats in grouped.sort_index(ascending=False).iterrows():
        week_start = max(end_ts - width * (int(offset) + 1), start_ts)
        rows.append(
            {
                "week_start": week_start.to_pydatetime(),
                "avg_quality": round(float(stats["mean"]), 1),
                "count": int(stats["count"]),
            }
        )
    return rows
