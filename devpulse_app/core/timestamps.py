"""Timezone-aware timestamp helpers."""

from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd
import pytz

from .config import TIMEZONE
from .errors import ValidationError
from .models import Timeframe

TZ = pytz.timezone(TIMEZONE)


def normalize_timestamp(value) -> datetime | None:
    """Normalize a timestamp-like value into an aware UTC ``datetime``.

    Returns None when the input is empty or cannot be parsed. Naive values are
    interpreted in the configured ``TIMEZONE``.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if getattr(ts, "tzinfo", None) is None:
        ts = ts.tz_localize(TZ)
    return ts.tz_convert(pytz.UTC).to_pydatetime()


def parse_bound(value, field_name: str) -> datetime | None:
    """Parse an optional timeframe bound; a given but unparseable value is an error."""
    if value is None or value == "":
        return None
    parsed = normalize_timestamp(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field_name} date: {value!r}", details={"field": field_name})
    return parsed


def utc_now() -> datetime:
    return datetime.now(tz=pytz.UTC)


def resolve_timeframe(
    start=None,
    end=None,
    *,
    default_days: int,
    now: datetime | None = None,
) -> Timeframe:
    """Build a validated timeframe, filling missing bounds with defaults.

    A missing end defaults to ``now``; a missing start defaults to
    ``default_days`` before the end.

    Raises
    ------
    ValidationError
        If a bound cannot be parsed or the start falls after the end.
    """
    end_ts = parse_bound(end, "end")
    start_ts = parse_bound(start, "start")
    end_ts = end_ts or normalize_timestamp(now) or utc_now()
    start_ts = start_ts or end_ts - timedelta(days=default_days)
    if start_ts > end_ts:
        raise ValidationError(
            "Timeframe start is after its end",
            details={"start": start_ts.isoformat(), "end": end_ts.isoformat()},
        )
    return Timeframe(start=start_ts, end=end_ts)


def hours_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600.0


def coerce_timeframe(value, *, default_days: int, now: datetime | None = None) -> Timeframe:
    """Accept a Timeframe, a ``{start, end}``/``{startDate, endDate}`` mapping,
    a ``(start, end)`` pair, or None, and return a validated Timeframe."""
    if value is None:
        return resolve_timeframe(default_days=default_days, now=now)
    if isinstance(value, Timeframe):
        return resolve_timeframe(value.start, value.end, default_days=default_days, now=now)
    if isinstance(value, dict):
        start = value.get("start", value.get("startDate"))
        end = value.get("end", value.get("endDate"))
        return resolve_timeframe(start, end, default_days=default_days, now=now)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return resolve_timeframe(value[0], value[1], default_days=default_days, now=now)
    raise ValidationError(f"Malformed timeframe: {value!r}", details={"field": "timeframe"})
