"""Feature stability scoring."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import pandas as pd

from devpulse_app.core.config import SEVERITY_ORDER
from devpulse_app.core.models import FeatureModel, FeatureStability, ProjectModel
from devpulse_app.core.scoring_config import DEFAULT_WEIGHTS, ScoringWeights


def stability_score(
    severity_counts: Mapping[str, int],
    recurring_bugs: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> float:
    """``clamp(100 - severity penalties - recurring * 10, 0, 100)``.

    >>> stability_score({"critical": 2, "high": 1}, 1)
    52.0
    """
    penalty = sum(weights.stability_penalties.get(sev, 0.0) * int(n) for sev, n in severity_counts.items())
    penalty += recurring_bugs * weights.stability_recurring_penalty
    return float(min(100.0, max(0.0, 100.0 - penalty)))


def severity_counts(bugs: pd.DataFrame) -> dict[str, int]:
    if bugs.empty:
        return {sev: 0 for sev in SEVERITY_ORDER}
    counts = bugs["severity"].value_counts()
    return {sev: int(counts.get(sev, 0)) for sev in SEVERITY_ORDER}


def score_features(
    features: Iterable[FeatureModel],
    df: pd.DataFrame,
    projects: Mapping[str, ProjectModel],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[FeatureStability]:
    """One stability row per feature, in input order (callers sort)."""
    grouped = {key: frame for key, frame in df.groupby("feature_id")} if not df.empty else {}
    out: list[FeatureStability] = []
    for feature in features:
        bugs = grouped.get(feature.id, df.iloc[0:0])
        counts = severity_counts(bugs)
        recurring = int(bugs["is_recurring"].sum()) if not bugs.empty else 0
        project = projects.get(feature.project_id)
        out.append(
            FeatureStability(
                feature_id=feature.id,
                feature_name=feature.name,
                project_name=project.name if project else None,
                stability_score=stability_score(counts, recurring, weights),
                total_bugs=int(len(bugs)),
                recurring_bugs=recurring,
                critical_bugs=counts["critical"],
                high_bugs=counts["high"],
                medium_bugs=counts["medium"],
                low_bugs=counts["low"],
            )
        )
    return out
