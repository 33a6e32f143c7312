"""Article quality review as an agent capability."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from agentcrew.models import CapabilityDefinition, Severity, ToolContext
from agentcrew.quality import (
    DEFAULT_PASS_THRESHOLD,
    render_review,
    revision_instructions,
    score,
)
from agentcrew.utils.observability import LangfuseClient, get_observability_client

SCORE_NAME = "article_quality"


class ReviewArticleParams(BaseModel):
    article: str = Field(..., min_length=1, description="The full article markdown to review")


def review_article(article: str, threshold: int = DEFAULT_PASS_THRESHOLD) -> dict[str, Any]:
    """Score an article and package the review for a model or API caller."""
    review = score(article, threshold)
    critical = len(review.issues_by_severity(Severity.CRITICAL))
    return {
        "score": review.overall,
        "passed": review.passed,
        "threshold": review.threshold,
        "breakdown": review.scores.model_dump(),
        "issues": [issue.model_dump(mode="json") for issue in review.issues],
        "formatted_review": render_review(review),
        "revision_instructions": revision_instructions(review) or None,
        "message": (
            f"Article passes quality threshold ({review.overall}/100)"
            if review.passed
            else f"Article needs revision ({review.overall}/100) - {critical} critical issues"
        ),
    }


def record_quality_score(
    overall: int,
    context: ToolContext,
    observability: LangfuseClient | None = None,
) -> None:
    """Attach an article score to the trace of the turn that produced it."""
    if not context.trace_id:
        return
    client = observability or get_observability_client()
    client.score(context.trace_id, SCORE_NAME, overall, comment=context.agent_id or None)


def quality_capability(
    threshold: int = DEFAULT_PASS_THRESHOLD,
    observability: LangfuseClient | None = None,
) -> CapabilityDefinition:
    async def execute(params: ReviewArticleParams, context: ToolContext) -> dict[str, Any]:
        payload = review_article(params.article, threshold)
        record_quality_score(payload["score"], context, observability)
        return payload

    return CapabilityDefinition(
        name="review_article_quality",
        description=(
            "Run automated quality checks on an article. "
            "Returns detailed scoring and specific issues to fix."
        ),
        parameters=ReviewArticleParams,
        executor=execute,
    )
