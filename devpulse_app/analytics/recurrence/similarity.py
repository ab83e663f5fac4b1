"""Issue title tokenization and token-overlap similarity."""

from __future__ import annotations

import re

from devpulse_app.core.config import TITLE_MIN_STEM_LENGTH, TITLE_STOP_WORDS, TITLE_SUFFIXES

_WORD_RE = re.compile(r"[a-z0-9]+")


def _stem(word: str) -> str:
    if word.endswith("ss"):
        return word
    for suffix in TITLE_SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= TITLE_MIN_STEM_LENGTH:
            return word[: -len(suffix)]
    return word


def tokenize_title(title: str | None) -> frozenset[str]:
    """Lower-case, strip punctuation, drop stop words, and fold inflections.

    >>> sorted(tokenize_title("Login fails on Safari!"))
    ['fail', 'login', 'safari']
    """
    if not title:
        return frozenset()
    words = _WORD_RE.findall(title.lower())
    return frozenset(_stem(w) for w in words if w not in TITLE_STOP_WORDS)


def title_similarity(a: str | None, b: str | None) -> float:
    """Jaccard overlap of the two titles' token sets (0 when both are empty)."""
    tokens_a = tokenize_title(a)
    tokens_b = tokenize_title(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)
