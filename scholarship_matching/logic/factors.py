"""
Prediction Interpretation

Turns a raw model probability and its per-feature contributions into the
decision-support fields of a PredictionResult: confidence bucket, history
adjustment, match level, recommendation text and grouped factors.
"""

from typing import Dict, List

from .constants import (
    FACTOR_GROUPS,
    FEATURE_DESCRIPTIONS,
    FEATURE_NAMES,
    CONFIDENCE_HIGH_MARGIN,
    CONFIDENCE_MEDIUM_MARGIN,
    HISTORY_APPROVAL_BOOST,
    HISTORY_REJECTION_PENALTY,
    PROBABILITY_FLOOR,
    PROBABILITY_CEILING,
    MATCH_LEVEL_THRESHOLDS,
    RECOMMENDATION_TEXTS,
    NOT_RECOMMENDED_TEXT,
    Confidence,
    MatchLevel,
)
from .contracts import FeatureContribution, FactorGroup


def confidence_level(probability: float) -> str:
    margin = abs(probability - 0.5)
    if margin >= CONFIDENCE_HIGH_MARGIN:
        return Confidence.HIGH.value
    if margin >= CONFIDENCE_MEDIUM_MARGIN:
        return Confidence.MEDIUM.value
    return Confidence.LOW.value


def adjust_for_history(probability: float, approvals: int, rejections: int) -> float:
    """
    Nudge the model probability by the applicant's own track record:
    +0.02 per prior approval, -0.01 per prior rejection, clamped to [0.10, 0.90].
    """
    adjusted = probability + HISTORY_APPROVAL_BOOST * approvals - HISTORY_REJECTION_PENALTY * rejections
    return min(PROBABILITY_CEILING, max(PROBABILITY_FLOOR, adjusted))


def match_level(probability: float) -> str:
    for threshold, level in MATCH_LEVEL_THRESHOLDS:
        if probability >= threshold:
            return level.value
    return MatchLevel.WEAK.value


def recommendation_text(probability: float) -> str:
    for threshold, text in RECOMMENDATION_TEXTS:
        if probability >= threshold:
            return text
    return NOT_RECOMMENDED_TEXT


def feature_contributions(features: Dict[str, float], weights: Dict[str, float]) -> List[FeatureContribution]:
    """Signed weight * value per feature, largest magnitude first."""
    contributions = []
    for name in FEATURE_NAMES:
        value = float(features.get(name, 0.0))
        weight = float(weights.get(name, 0.0))
        contributions.append(FeatureContribution(
            feature=name,
            value=value,
            weight=weight,
            contribution=weight * value,
            description=FEATURE_DESCRIPTIONS.get(name, name),
        ))
    contributions.sort(key=lambda c: abs(c.contribution), reverse=True)
    return contributions


def _describe_group(name: str, raw: float) -> str:
    if raw > 0:
        return f"{name} strengthens your application"
    if raw < 0:
        return f"{name} weakens your application"
    return f"{name} has no effect on this prediction"


def group_factors(contributions: List[FeatureContribution]) -> List[FactorGroup]:
    """
    Sum contributions per factor group, normalized by the total absolute
    contribution of all features. Sorted by absolute raw contribution.
    """
    by_feature = {c.feature: c.contribution for c in contributions}
    total_abs = sum(abs(c.contribution) for c in contributions)

    groups = []
    for name, members in FACTOR_GROUPS.items():
        raw = sum(by_feature.get(f, 0.0) for f in members)
        groups.append(FactorGroup(
            name=name,
            contribution=raw / total_abs if total_abs > 0 else 0.0,
            raw_contribution=raw,
            features=list(members),
            description=_describe_group(name, raw),
        ))
    groups.sort(key=lambda g: abs(g.raw_contribution), reverse=True)
    return groups
