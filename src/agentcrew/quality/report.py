"""Human-readable renderings of a quality review."""

from __future__ import annotations

import math
import re

from agentcrew.models import ArticleCheck, Dimension, QualityReview, Severity

from .rules import HEADER_BLOCK, HEADER_DELIMITER, HEADER_KEYS, REFERENCES_HEADING

MAX_RENDERED_ISSUES = 7
MIN_BODY_LENGTH = 200
GUIDANCE_THRESHOLD = 70
WORDS_PER_MINUTE = 200

DIMENSION_LABELS = {
    Dimension.STRUCTURAL: "Structure",
    Dimension.FACTUAL_DENSITY: "Factual Density",
    Dimension.ATTRIBUTION: "Source Attribution",
    Dimension.FORMATTING: "Formatting",
    Dimension.ANALYTICAL_DEPTH: "Analytical Depth",
    Dimension.REGISTER: "UK English",
}

SEVERITY_MARKERS = {
    Severity.CRITICAL: "[CRITICAL]",
    Severity.MAJOR: "[MAJOR]",
    Severity.MINOR: "[minor]",
}

DIMENSION_GUIDANCE = {
    Dimension.STRUCTURAL: (
        "STRUCTURE: Open with a complete metadata header, include a Key Data "
        "Summary table and close with a Sources section."
    ),
    Dimension.FACTUAL_DENSITY: (
        "FACTUAL DENSITY: Include more specific statistics. Every claim should "
        "have a number, and the Key Data Summary table needs 3+ concrete figures."
    ),
    Dimension.ATTRIBUTION: (
        "ATTRIBUTION: Cite sources naturally in text ('According to Skills for "
        "Care...', 'CQC data shows...'). Add a Sources section at the end."
    ),
    Dimension.FORMATTING: (
        "FORMATTING: Use clean markdown. Bullets with '* ', bold with **text**, "
        "headings with '## '."
    ),
    Dimension.ANALYTICAL_DEPTH: (
        "ANALYSIS: Go beyond reporting facts. Compare data, explain implications "
        "and state what it means for care workers."
    ),
    Dimension.REGISTER: (
        "UK ENGLISH: Use British spellings (organisation, analyse, centre) and "
        "UK social care terminology."
    ),
}


def _grade(overall: int) -> str:
    if overall >= 80:
        return "excellent"
    if overall >= 60:
        return "acceptable"
    return "needs work"


def render_review(review: QualityReview) -> str:
    """Plain-text summary of a review, listing the most serious issues first."""
    status = "PASSED" if review.passed else "FAILED"
    lines = [
        f"Article Quality Review: {status}",
        "",
        f"Overall Score: {review.overall}/100 ({_grade(review.overall)})",
        "",
        "Score Breakdown:",
    ]
    lines.extend(
        f"  {DIMENSION_LABELS[dimension]}: {review.scores.get(dimension)}/100"
        for dimension in Dimension
    )

    if review.issues:
        lines.extend(["", f"Issues Found ({len(review.issues)}):"])
        for issue in review.issues[:MAX_RENDERED_ISSUES]:
            lines.append(
                f"{SEVERITY_MARKERS[issue.severity]} "
                f"{DIMENSION_LABELS[issue.dimension]}: {issue.description}"
            )
            lines.append(f"   -> {issue.suggestion}")
        hidden = len(review.issues) - MAX_RENDERED_ISSUES
        if hidden > 0:
            lines.append(f"...and {hidden} more issues")

    lines.extend(["", f"Pass threshold: {review.threshold}/100"])
    return "\n".join(lines)


def revision_instructions(review: QualityReview) -> str:
    """Actionable fix list for a failed review; empty when the review passed."""
    if review.passed:
        return ""

    lines = ["REVISION REQUIRED - Fix these issues:", ""]

    critical = review.issues_by_severity(Severity.CRITICAL)
    if critical:
        lines.append("CRITICAL (must fix):")
        lines.extend(
            f"{i}. {issue.description} - {issue.suggestion}"
            for i, issue in enumerate(critical, start=1)
        )
        lines.append("")

    major = review.issues_by_severity(Severity.MAJOR)
    if major:
        lines.append("MAJOR (should fix):")
        lines.extend(
            f"{i}. {issue.description} - {issue.suggestion}"
            for i, issue in enumerate(major, start=1)
        )
        lines.append("")

    guidance = [
        DIMENSION_GUIDANCE[dimension]
        for dimension in Dimension
        if review.scores.get(dimension) < GUIDANCE_THRESHOLD
    ]
    if guidance:
        lines.append("SPECIFIC GUIDANCE:")
        lines.extend(guidance)

    return "\n".join(lines).rstrip()


def quick_validate(text: str) -> ArticleCheck:
    """Cheap structural gate run before the full review."""
    errors: list[str] = []

    if not text.startswith(HEADER_DELIMITER):
        errors.append("Missing metadata header")
        return ArticleCheck(valid=False, errors=errors)

    block = HEADER_BLOCK.match(text)
    if block is None:
        errors.append("Unterminated metadata header")
        return ArticleCheck(valid=False, errors=errors)

    header = block.group(1)
    errors.extend(
        f"Missing {key}"
        for key in HEADER_KEYS
        if not re.search(rf"^{key}:", header, re.MULTILINE)
    )

    body = text[block.end():].strip()
    if len(body) < MIN_BODY_LENGTH:
        errors.append("Content too short")

    if REFERENCES_HEADING not in text:
        errors.append("Missing Sources section")

    return ArticleCheck(valid=not errors, errors=errors)


def count_words(text: str) -> int:
    return len(text.split())


def read_time_minutes(text: str) -> int:
    """Reading time in whole minutes, never less than one."""
    return max(1, math.ceil(count_words(text) / WORDS_PER_MINUTE))
