"""Recurrence analysis: monthly recurring-issue trends and per-developer rates."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import pandas as pd

from devpulse_app.core.config import DEFAULT_RECURRENCE_MONTHS
from devpulse_app.core.models import DeveloperModel


def monthly_recurrence(df: pd.DataFrame, now: datetime, months: int = DEFAULT_RECURRENCE_MONTHS) -> list[dict]:
    """Issues created per trailing month window and how many are recurring.

    Windows are ``[now - (i+1) months, now - i months)``, oldest first, and
    each is labelled by the month of its end (e.g. ``"Oct 2026"``).
    """
    created = pd.to_datetime(df["created_at"], utc=True, errors="coerce") if not df.empty else None
    anchor = pd.Timestamp(now)
    out: list[dict] = []
    for i in range(months - 1, -1, -1):
        start = anchor - pd.DateOffset(months=i + 1)
        end = anchor - pd.DateOffset(months=i)
        if created is None:
            total = recurring = 0
        else:
            mask = (created >= start) & (created < end)
            total = int(mask.sum())
            recurring = int(df.loc[mask, "is_recurring"].sum())
        out.append(
            {
                "month": end.strftime("%b %Y"),
                "total_issues": total,
                "recurring_issues": recurring,
                "recurrence_rate": (recurring / total * 100.0) if total else 0.0,
            }
        )
    return out


def developer_recurrence(df: pd.DataFrame, developers: Iterable[DeveloperModel]) -> list[dict]:
    rows = []
    for dev in developers:
        if dev.is_manager:
            continue
        mine = df[df["assigned_to_id"] == dev.id] if not df.empty else df
        total = int(len(mine))
        recurring = int(mine["is_recurring"].sum()) if total else 0
        quality = mine["fix_quality"].dropna() if total else pd.Series(dtype=float)
        rows.append(
            {
                "developer_id": dev.id,
                "developer_name": dev.full_name,
                "total_issues": total,
                "recurring_issues": recurring,
                "recurrence_rate": (recurring / total * 100.0) if total else 0.0,
                "avg_fix_quality": float(quality.mean()) if not quality.empty else 0.0,
            }
        )
    return rows
