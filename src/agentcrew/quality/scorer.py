"""Deterministic article scoring.

``score`` folds the rule table over an article: every dimension starts at
100, each rule hit subtracts ``penalty * units`` from its dimension, and
dimensions clamp at 0. The overall score is the weighted sum, rounded
half-up.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from agentcrew.models import (
    Dimension,
    DimensionScores,
    QualityIssue,
    QualityReview,
)

from .rules import RULES, Rule

DEFAULT_PASS_THRESHOLD = 70
MAX_SCORE = 100

STRUCTURAL_WEIGHT = 0.15
FACTUAL_DENSITY_WEIGHT = 0.25
ATTRIBUTION_WEIGHT = 0.20
FORMATTING_WEIGHT = 0.10
ANALYTICAL_DEPTH_WEIGHT = 0.20
REGISTER_WEIGHT = 0.10

# Weights are combined in basis points so the weighted sum stays exact.
_BASIS = 10_000


@dataclass(frozen=True)
class ScoringWeights:
    """Per-dimension weights for the overall score. Must sum to 1.0."""

    structural: float = STRUCTURAL_WEIGHT
    factual_density: float = FACTUAL_DENSITY_WEIGHT
    attribution: float = ATTRIBUTION_WEIGHT
    formatting: float = FORMATTING_WEIGHT
    analytical_depth: float = ANALYTICAL_DEPTH_WEIGHT
    register_compliance: float = REGISTER_WEIGHT

    def __post_init__(self) -> None:
        total = sum(self._basis_points().values())
        if total != _BASIS:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total / _BASIS}")

    def _basis_points(self) -> dict[Dimension, int]:
        return {
            dimension: round(getattr(self, dimension.value) * _BASIS)
            for dimension in Dimension
        }

    def combine(self, scores: DimensionScores) -> int:
        """Weighted overall score, rounded half-up."""
        weighted = sum(
            scores.get(dimension) * points
            for dimension, points in self._basis_points().items()
        )
        return (weighted + _BASIS // 2) // _BASIS


DEFAULT_WEIGHTS = ScoringWeights()


def score(
    text: str,
    threshold: int = DEFAULT_PASS_THRESHOLD,
    *,
    rules: Iterable[Rule] = RULES,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> QualityReview:
    """Score an article.

    Pure and deterministic: the same text always yields the same review.

    Args:
        text: Article markdown, optionally with a ``---`` metadata header.
        threshold: Minimum overall score that counts as passing.
        rules: Rule table to apply.
        weights: Dimension weights for the overall score.

    Returns:
        A frozen QualityReview with issues sorted critical, major, minor.
    """
    remaining = {dimension: MAX_SCORE for dimension in Dimension}
    issues: list[QualityIssue] = []

    for rule in rules:
        hit = rule.check(text)
        if hit is None:
            continue
        penalty = rule.penalty * hit.units
        remaining[rule.dimension] -= penalty
        issues.append(
            QualityIssue(
                dimension=rule.dimension,
                severity=rule.severity,
                rule=rule.name,
                description=rule.describe(hit),
                example=hit.example,
                suggestion=rule.suggestion,
                penalty=penalty,
            )
        )

    scores = DimensionScores(
        **{dimension.value: max(0, value) for dimension, value in remaining.items()}
    )
    overall = weights.combine(scores)
    issues.sort(key=lambda issue: issue.severity.rank)

    return QualityReview(
        scores=scores,
        issues=tuple(issues),
        overall=overall,
        passed=overall >= threshold,
        threshold=threshold,
    )
