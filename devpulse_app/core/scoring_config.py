"""Load scoring weights from YAML (with fallbacks to built-in defaults).

The weighting constants behind productivity, stability, and risk scores are
deployment-specific, so every one of them can be overridden from a
``scoring.yaml`` file placed next to the ``devpulse_app`` package (or at an
explicit path). Unknown keys are ignored; missing keys keep their defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .config import SETTINGS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    # Productivity
    severity_weights: dict[str, float] = field(
        default_factory=lambda: {"critical": 4.0, "high": 3.0, "medium": 2.0, "low": 1.0}
    )
    productivity_multiplier: float = 10.0
    min_resolution_days: float = 1.0

    # Stability
    stability_penalties: dict[str, float] = field(
        default_factory=lambda: {"critical": 15.0, "high": 8.0, "medium": 3.0, "low": 1.0}
    )
    stability_recurring_penalty: float = 10.0

    # Hotspot risk
    risk_density_weight: float = 20.0
    risk_recurring_weight: float = 30.0
    risk_critical_weight: float = 10.0
    risk_immediate_threshold: float = 70.0
    risk_review_threshold: float = 50.0
    risk_monitor_threshold: float = 30.0

    # Trend classification
    trend_increase_ratio: float = 1.2
    trend_decrease_ratio: float = 0.8

    # Project health
    health_open_penalty: float = 2.0
    health_critical_penalty: float = 5.0
    health_recurring_penalty: float = 10.0

    def severity_weight(self, severity: str | None) -> float:
        return float(self.severity_weights.get(severity or "", 0.0))


DEFAULT_WEIGHTS = ScoringWeights()

_CACHE: ScoringWeights | None = None


def _merge(data: dict[str, Any]) -> ScoringWeights:
    known = {f.name for f in fields(ScoringWeights)}
    overrides: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            logger.debug("Ignoring unknown scoring key %s", key)
            continue
        default = getattr(DEFAULT_WEIGHTS, key)
        if isinstance(default, dict):
            if not isinstance(value, dict):
                raise ValueError(f"Scoring key {key!r} must be a mapping")
            merged = dict(default)
            merged.update({str(k).lower(): float(v) for k, v in value.items()})
            overrides[key] = merged
        else:
            overrides[key] = float(value)
    return replace(DEFAULT_WEIGHTS, **overrides)


def load_scoring_weights(path: str | Path | None = None, *, refresh: bool = False) -> ScoringWeights:
    """Return scoring weights, reading ``scoring.yaml`` when present.

    Parameters
    ----------
    path : str | Path | None
        Explicit YAML file. When omitted, ``scoring.yaml`` beside the package
        is used if it exists.
    refresh : bool
        Ignore the cached value from a previous call.
    """
    global _CACHE
    if path is None and _CACHE is not None and not refresh:
        return _CACHE
    yaml_path = Path(path) if path else Path(__file__).resolve().parent.parent / SETTINGS.scoring_config_name
    if not yaml_path.exists():
        weights = DEFAULT_WEIGHTS
    else:
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            section = data.get("weights", data)
            if not isinstance(section, dict):
                raise ValueError("'weights' must be a mapping")
            weights = _merge(section)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Invalid scoring config %s, using defaults: %s", yaml_path, exc)
            weights = DEFAULT_WEIGHTS
    if path is None:
        _CACHE = weights
    return weights
