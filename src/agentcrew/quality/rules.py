"""Declarative rule table for article quality scoring.

Each ``Rule`` pairs a check with a dimension, severity and per-unit
penalty. A check returns ``None`` when the rule is satisfied, or a ``Hit``
whose ``units`` multiply the penalty (occurrence counts, missing keys, or a
scaled excess). The scorer is a single fold over ``RULES``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from agentcrew.models import Dimension, Severity

HEADER_DELIMITER = "---"
HEADER_KEYS = (
    "title",
    "slug",
    "excerpt",
    "publishedAt",
    "category",
    "readTime",
    "author",
    "tags",
)
REFERENCES_HEADING = "## Sources"
# Group 1 is the first run of table rows after the heading
SUMMARY_TABLE = re.compile(
    r"Key Data Summary[\s\S]*?((?:^\|.*(?:\n|\Z))+)", re.MULTILINE
)
HEADER_BLOCK = re.compile(r"^---\s*\n([\s\S]*?)\n---")
HEADER_KEY_LINE = re.compile(r"^\w+:", re.MULTILINE)


@dataclass(frozen=True)
class Hit:
    """A rule violation found by a check."""

    units: int = 1
    example: str | None = None
    detail: str = ""


Check = Callable[[str], Hit | None]


@dataclass(frozen=True)
class Rule:
    """One scoring rule.

    ``description`` may reference ``{example}`` and ``{detail}`` from the hit.
    """

    name: str
    dimension: Dimension
    severity: Severity
    penalty: int
    check: Check
    description: str
    suggestion: str

    def describe(self, hit: Hit) -> str:
        return self.description.format(example=hit.example or "", detail=hit.detail)


# ----------------------------------------------------------------------
# Check constructors
# ----------------------------------------------------------------------


def _compile(patterns: Sequence[str | re.Pattern[str]], flags: int) -> list[re.Pattern[str]]:
    return [p if isinstance(p, re.Pattern) else re.compile(p, flags) for p in patterns]


def count_matches(text: str, patterns: Sequence[re.Pattern[str]]) -> int:
    return sum(1 for pattern in patterns for _ in pattern.finditer(text))


def occurrences(pattern: str, flags: int = 0) -> Check:
    """One unit per occurrence of ``pattern``."""
    regex = re.compile(pattern, flags)

    def check(text: str) -> Hit | None:
        found = [m.group(0) for m in regex.finditer(text)]
        if not found:
            return None
        return Hit(units=len(found), example=found[0], detail=str(len(found)))

    return check


def first_match(pattern: str, flags: int = 0) -> Check:
    """One unit if ``pattern`` occurs anywhere."""
    regex = re.compile(pattern, flags)

    def check(text: str) -> Hit | None:
        match = regex.search(text)
        return Hit(example=match.group(0)) if match else None

    return check


def missing_literal(literal: str) -> Check:
    """One unit if ``literal`` does not appear."""

    def check(text: str) -> Hit | None:
        return None if literal in text else Hit(detail=literal)

    return check


def header_fields(text: str) -> str | None:
    """Body of a terminated header block holding at least one key line."""
    block = HEADER_BLOCK.match(text)
    if block is None or not HEADER_KEY_LINE.search(block.group(1)):
        return None
    return block.group(1)


def missing_header() -> Check:
    """One unit unless the text opens with a usable header block."""

    def check(text: str) -> Hit | None:
        return None if header_fields(text) is not None else Hit()

    return check


def count_below(patterns: Sequence[str | re.Pattern[str]], minimum: int, flags: int = 0) -> Check:
    """One unit if the total match count is under ``minimum``."""
    compiled = _compile(patterns, flags)

    def check(text: str) -> Hit | None:
        total = count_matches(text, compiled)
        return Hit(detail=str(total)) if total < minimum else None

    return check


def count_above(
    patterns: Sequence[str | re.Pattern[str]],
    tolerance: int,
    max_units: int | None = None,
    flags: int = 0,
) -> Check:
    """``min(total - tolerance, max_units)`` units once the total exceeds ``tolerance``."""
    compiled = _compile(patterns, flags)

    def check(text: str) -> Hit | None:
        matches = [m.group(0) for p in compiled for m in p.finditer(text)]
        excess = len(matches) - tolerance
        if excess <= 0:
            return None
        units = excess if max_units is None else min(excess, max_units)
        return Hit(units=units, example=", ".join(matches[:3]), detail=str(len(matches)))

    return check


def missing_header_keys(keys: Sequence[str]) -> Check:
    """One unit per required key absent from the header block.

    Silent when there is no usable header; ``missing_header`` covers that.
    """

    def check(text: str) -> Hit | None:
        fields = header_fields(text)
        if fields is None:
            return None
        missing = [key for key in keys if not re.search(rf"^{key}:", fields, re.MULTILINE)]
        return Hit(units=len(missing), detail=", ".join(missing)) if missing else None

    return check


def summary_table_missing() -> Check:
    def check(text: str) -> Hit | None:
        return None if SUMMARY_TABLE.search(text) else Hit()

    return check


def summary_table_without_figures() -> Check:
    def check(text: str) -> Hit | None:
        table = SUMMARY_TABLE.search(text)
        if table is None or re.search(r"\d", table.group(1)):
            return None
        return Hit()

    return check


# ----------------------------------------------------------------------
# Vocabulary
# ----------------------------------------------------------------------

PLACEHOLDERS: tuple[tuple[str, int], ...] = (
    (r"to be confirmed", re.IGNORECASE),
    (r"TBC", 0),
    (r"TBD", 0),
    (r"\[insert", re.IGNORECASE),
    (r"\[add", re.IGNORECASE),
    (r"N/A", 0),
    (r"data unavailable", re.IGNORECASE),
    (r"figures pending", re.IGNORECASE),
    (r"awaiting data", re.IGNORECASE),
    (r"XX%", 0),
    (r"X,XXX", 0),
    (r"\$X", 0),
    (r"£X", 0),
    (r"\[TODO\]", re.IGNORECASE),
    (r"\[PLACEHOLDER\]", re.IGNORECASE),
)

DATA_TOKENS = (
    r"\d+%",
    r"£[\d,]+",
    r"\d{1,3}(?:,\d{3})+",
    r"\d+\.\d+",
)

ATTRIBUTION_PHRASES = (
    r"according to|reported by|data from|states that|found that"
    r"|published by|research by|analysis by",
)

BRACKET_CITATION = r"\[\d+\]"

MALFORMED_MARKUP: tuple[tuple[str, str, str], ...] = (
    ("escaped_markup", r"\\\\[*_]", "escaped markdown characters"),
    ("broken_bullets", r"\n\s*\\[*]", "broken bullet points"),
    ("empty_emphasis", r"\*\*\s+\*\*", "empty bold text"),
    ("empty_heading", r"(?m)^#{1,6}[ \t]*$", "empty headings"),
    ("heading_spacing", r"\n#+[^\s#]", "headings without space after #"),
)

FILLER_PHRASES = tuple(
    rf"\b{phrase}\b"
    for phrase in (
        "it is important to",
        "it is essential to",
        "in today's world",
        "in this day and age",
        "going forward",
        "at the end of the day",
        "when it comes to",
        "there is no doubt that",
        "it goes without saying",
        "needless to say",
        "as we all know",
    )
)

CONNECTIVES = tuple(
    rf"\b{phrase}\b"
    for phrase in (
        "this suggests",
        "this indicates",
        "the implication",
        "this means that",
        "compared to",
        "in contrast",
        "however",
        "despite",
        "although",
        "while",
        "consequently",
        "as a result",
    )
)

DISFAVOURED_SPELLINGS: tuple[tuple[str, str], ...] = (
    ("organization", "organisation"),
    ("organize", "organise"),
    ("organizing", "organising"),
    ("recognize", "recognise"),
    ("recognizing", "recognising"),
    ("analyze", "analyse"),
    ("analyzing", "analysing"),
    ("center", "centre"),
    ("color", "colour"),
    ("favor", "favour"),
    ("honor", "honour"),
    ("labor", "labour"),
    ("program", "programme"),
    ("specialize", "specialise"),
    ("specialized", "specialised"),
    ("minimize", "minimise"),
    ("maximize", "maximise"),
    ("prioritize", "prioritise"),
    ("utilize", "utilise"),
    ("defense", "defence"),
    ("license", "licence"),
    ("practice", "practise"),
)

DISFAVOURED_TERMS: tuple[tuple[str, str], ...] = (
    ("nursing home", "care home"),
    ("caregiver", "carer or care worker"),
    ("local government", "local authority"),
    ("child protection", "safeguarding"),
    ("adult protection", "safeguarding"),
)


# ----------------------------------------------------------------------
# Rule table
# ----------------------------------------------------------------------


def _structural_rules() -> list[Rule]:
    return [
        Rule(
            name="header_missing",
            dimension=Dimension.STRUCTURAL,
            severity=Severity.CRITICAL,
            penalty=25,
            check=missing_header(),
            description="Missing metadata header",
            suggestion=(
                "Start the article with a --- header block containing "
                + ", ".join(HEADER_KEYS)
            ),
        ),
        Rule(
            name="header_keys_missing",
            dimension=Dimension.STRUCTURAL,
            severity=Severity.MAJOR,
            penalty=5,
            check=missing_header_keys(HEADER_KEYS),
            description="Missing header fields: {detail}",
            suggestion="Add all required header fields",
        ),
        Rule(
            name="summary_table_missing",
            dimension=Dimension.STRUCTURAL,
            severity=Severity.MAJOR,
            penalty=15,
            check=summary_table_missing(),
            description="Missing Key Data Summary table",
            suggestion="Add a Key Data Summary section with a markdown table showing 3+ key statistics",
        ),
        Rule(
            name="references_missing",
            dimension=Dimension.STRUCTURAL,
            severity=Severity.MAJOR,
            penalty=10,
            check=missing_literal(REFERENCES_HEADING),
            description="Missing references section",
            suggestion=f"End the article with a '{REFERENCES_HEADING}' section",
        ),
    ]


def _factual_rules() -> list[Rule]:
    rules = [
        Rule(
            name=f"placeholder:{pattern}",
            dimension=Dimension.FACTUAL_DENSITY,
            severity=Severity.CRITICAL,
            penalty=15,
            check=occurrences(pattern, flags),
            description='Found placeholder data: "{example}"',
            suggestion=(
                "Replace with actual figures from research sources, "
                "or remove the section if data is unavailable"
            ),
        )
        for pattern, flags in PLACEHOLDERS
    ]
    rules.extend(
        [
            Rule(
                name="summary_table_without_figures",
                dimension=Dimension.FACTUAL_DENSITY,
                severity=Severity.CRITICAL,
                penalty=20,
                check=summary_table_without_figures(),
                description="Key Data Summary table lacks specific numbers",
                suggestion=(
                    "Include at least 3 concrete statistics with actual figures "
                    "(e.g. '£12.50/hour', '152,000 vacancies', '8.3% increase')"
                ),
            ),
            Rule(
                name="data_tokens_low",
                dimension=Dimension.FACTUAL_DENSITY,
                severity=Severity.MAJOR,
                penalty=15,
                check=count_below(DATA_TOKENS, 5),
                description="Only {detail} specific statistics found (minimum 5 recommended)",
                suggestion="Add more concrete data points from your research sources",
            ),
        ]
    )
    return rules


def _attribution_rules() -> list[Rule]:
    return [
        Rule(
            name="attribution_low",
            dimension=Dimension.ATTRIBUTION,
            severity=Severity.MAJOR,
            penalty=20,
            check=count_below(ATTRIBUTION_PHRASES, 3, re.IGNORECASE),
            description="Insufficient inline source attribution ({detail} found)",
            suggestion=(
                "Cite sources naturally in the text "
                "(e.g. 'According to Skills for Care...', 'CQC data shows...')"
            ),
        ),
        Rule(
            name="bracket_citations",
            dimension=Dimension.ATTRIBUTION,
            severity=Severity.MAJOR,
            penalty=15,
            check=count_above((BRACKET_CITATION,), 3, max_units=1),
            description="Using bracket citations ({example}) instead of natural attribution",
            suggestion=(
                "Replace [1] style citations with natural attribution: "
                "'According to the CQC...' or 'Skills for Care reports that...'"
            ),
        ),
        Rule(
            name="references_missing",
            dimension=Dimension.ATTRIBUTION,
            severity=Severity.CRITICAL,
            penalty=25,
            check=missing_literal(REFERENCES_HEADING),
            description="Missing Sources section",
            suggestion=f"Add a '{REFERENCES_HEADING}' section at the end with categorised references",
        ),
    ]


def _formatting_rules() -> list[Rule]:
    return [
        Rule(
            name=name,
            dimension=Dimension.FORMATTING,
            severity=Severity.MAJOR,
            penalty=15,
            check=first_match(pattern),
            description=f"Found {label}",
            suggestion="Fix markdown formatting: use * for bullets and ** for bold",
        )
        for name, pattern, label in MALFORMED_MARKUP
    ]


def _analytical_rules() -> list[Rule]:
    return [
        Rule(
            name="filler_excess",
            dimension=Dimension.ANALYTICAL_DEPTH,
            severity=Severity.MINOR,
            penalty=10,
            check=count_above(FILLER_PHRASES, 3, max_units=5, flags=re.IGNORECASE),
            description="Found {detail} filler phrases that add no value",
            suggestion="Replace generic phrases with specific analysis and insights",
        ),
        Rule(
            name="connectives_low",
            dimension=Dimension.ANALYTICAL_DEPTH,
            severity=Severity.MAJOR,
            penalty=15,
            check=count_below(CONNECTIVES, 5, re.IGNORECASE),
            description="Article lacks analytical depth ({detail} analytical connectives)",
            suggestion=(
                "Compare data, explain implications and discuss what the findings "
                "mean for care workers"
            ),
        ),
    ]


def _register_rules() -> list[Rule]:
    rules = [
        Rule(
            name=f"spelling:{disfavoured}",
            dimension=Dimension.REGISTER,
            severity=Severity.MINOR,
            penalty=5,
            check=occurrences(rf"\b{disfavoured}\b", re.IGNORECASE),
            description=f'American spelling "{{example}}" should be "{preferred}"',
            suggestion=f'Use British spelling: "{preferred}"',
        )
        for disfavoured, preferred in DISFAVOURED_SPELLINGS
    ]
    rules.extend(
        Rule(
            name=f"term:{disfavoured}",
            dimension=Dimension.REGISTER,
            severity=Severity.MINOR,
            penalty=10,
            check=first_match(rf"\b{disfavoured}\b", re.IGNORECASE),
            description=f'"{{example}}" should be "{preferred}" in UK social care context',
            suggestion=f'Use UK social care terminology: "{preferred}"',
        )
        for disfavoured, preferred in DISFAVOURED_TERMS
    )
    return rules


RULES: tuple[Rule, ...] = (
    *_structural_rules(),
    *_factual_rules(),
    *_attribution_rules(),
    *_formatting_rules(),
    *_analytical_rules(),
    *_register_rules(),
)
