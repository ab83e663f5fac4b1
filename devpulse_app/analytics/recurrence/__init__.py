"""Recurrence feature module: title matching, chain linking, and trends."""

from devpulse_app.analytics.recurrence.analysis import developer_recurrence, monthly_recurrence
from devpulse_app.analytics.recurrence.linker import ChainIndex, RecurrenceLinker
from devpulse_app.analytics.recurrence.similarity import title_similarity, tokenize_title

__all__ = [
    "ChainIndex",
    "RecurrenceLinker",
    "developer_recurrence",
    "monthly_recurrence",
    "title_similarity",
    "tokenize_title",
]
