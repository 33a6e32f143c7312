"""Article quality scoring engine.

This package provides:
- rules: the declarative rule table
- scorer: the pure ``score`` fold and dimension weights
- report: plain-text rendering, revision instructions and a quick gate
"""

from .report import (
    count_words,
    quick_validate,
    read_time_minutes,
    render_review,
    revision_instructions,
)
from .rules import RULES, Hit, Rule
from .scorer import (
    DEFAULT_PASS_THRESHOLD,
    DEFAULT_WEIGHTS,
    ScoringWeights,
    score,
)

__all__ = [
    # Rules
    "RULES",
    "Hit",
    "Rule",
    # Scoring
    "DEFAULT_PASS_THRESHOLD",
    "DEFAULT_WEIGHTS",
    "ScoringWeights",
    "score",
    # Reporting
    "count_words",
    "quick_validate",
    "read_time_minutes",
    "render_review",
    "revision_instructions",
]
