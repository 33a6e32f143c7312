"""News article drafting for Chronicle.

``generate_news_article`` makes one dedicated model call to draft an article
from researched sources, then runs the structural gate, the quality review
and the reading stats over the draft so the agent sees everything in a
single tool result.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field

from agentcrew.llm.base import BaseLLMProvider
from agentcrew.models import CapabilityDefinition, Severity, ToolContext
from agentcrew.quality import (
    DEFAULT_PASS_THRESHOLD,
    count_words,
    quick_validate,
    read_time_minutes,
    revision_instructions,
    score,
)
from agentcrew.utils.logging import get_logger
from agentcrew.utils.observability import LangfuseClient

from .quality import record_quality_score

logger = get_logger(__name__)

ARTICLE_MAX_TOKENS = 4096
TITLE = re.compile(r"title:\s*[\"']?([^\"'\n]+)[\"']?")

ARTICLE_SYSTEM_PROMPT = """You are a senior investigative journalist writing for CareScope \
Intelligence, a UK-focused social care news and analysis platform. Today is {today}.

RULES:
1. British English only (recognise, analyse, organisation, programme).
2. Every claim must have a source. Use only facts from the provided sources.
3. Title Case for headings.

STRUCTURE:
- Open with a --- metadata header containing title, slug, excerpt, publishedAt \
("{today}"), category, readTime (word count / 200), author and tags, closed by ---.
- An opening paragraph with the key finding, no heading.
- "## Key Data Summary" with a markdown table of at least 3 concrete figures.
- ## sections for the main content, ### for subsections.
- End with "## Sources", grouped by category, one numbered entry per source with its URL."""


class ArticleSource(BaseModel):
    title: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    organisation: str = Field(..., min_length=1)
    category: Literal["primary", "government", "regulatory", "academic", "industry", "media"]
    snippet: str = ""
    published_date: str | None = None


class GenerateArticleParams(BaseModel):
    topic: str = Field(..., min_length=1, description="The article topic or headline focus")
    sources: list[ArticleSource] = Field(
        ..., min_length=1, description="Sources returned by research_topic"
    )
    angle: str | None = Field(
        default=None,
        description='Specific angle for the article, e.g. "focus on regional disparities"',
    )


def build_article_prompt(params: GenerateArticleParams) -> str:
    source_context = "\n\n".join(
        f'[{i}] {s.category.upper()}: "{s.title}" - {s.organisation}\n'
        f"    URL: {s.url}\n"
        f"    Content: {s.snippet}"
        for i, s in enumerate(params.sources, start=1)
    )
    angle = f"ANGLE/FOCUS: {params.angle}\n\n" if params.angle else ""
    return (
        f"Write a comprehensive news article about: {params.topic}\n\n"
        f"{angle}"
        "AVAILABLE SOURCES (you MUST cite these - do not make up sources):\n"
        f"{source_context}\n\n"
        "REQUIREMENTS:\n"
        "1. Use ONLY facts from the provided sources\n"
        "2. Cite sources inline using the organisation name\n"
        "3. Include at least 3 items in the Key Data Summary table\n"
        "4. Include a Sources section at the end with all used sources\n"
        "5. Use British English throughout\n"
        "6. Make it engaging and analytical, not just a summary\n\n"
        "Generate the complete article now with its metadata header."
    )


class ArticleWriter:
    """Executor for ``generate_news_article``.

    Args:
        provider: Model provider used for the drafting call.
        model_tier: Tier whose model drafts the article.
        threshold: Quality pass threshold.
        observability: Langfuse client for the quality score; the global
            client is used when omitted.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        model_tier: str = "standard",
        threshold: int = DEFAULT_PASS_THRESHOLD,
        observability: LangfuseClient | None = None,
    ) -> None:
        self._provider = provider
        self._model_tier = model_tier
        self._threshold = threshold
        self._observability = observability

    async def __call__(
        self, params: GenerateArticleParams, context: ToolContext
    ) -> dict[str, Any]:
        response = await self._provider.chat(
            messages=[{"role": "user", "content": build_article_prompt(params)}],
            model=self._provider.model_for(self._model_tier),
            max_tokens=ARTICLE_MAX_TOKENS,
            system_prompt=ARTICLE_SYSTEM_PROMPT.format(today=date.today().isoformat()),
        )
        article = response.content

        validation = quick_validate(article)
        review = score(article, self._threshold)
        record_quality_score(review.overall, context, self._observability)

        words = count_words(article)
        read_time = read_time_minutes(article)
        title_match = TITLE.search(article)
        title = title_match.group(1).strip() if title_match else params.topic

        quality = (
            f"Quality: {review.overall}/100 (PASSED)"
            if review.passed
            else f"Quality: {review.overall}/100 (NEEDS REVISION)"
        )
        if validation.valid:
            message = (
                f'Article generated: "{title}" ({words} words, {read_time} min read, '
                f"{len(params.sources)} sources). {quality}"
            )
        else:
            message = (
                f"Article generated with validation issues: {', '.join(validation.errors)}. "
                f"{quality}"
            )

        logger.info(
            "Article drafted",
            agent_id=context.agent_id,
            words=words,
            score=review.overall,
            valid=validation.valid,
        )
        return {
            "article": article,
            "title": title,
            "word_count": words,
            "read_time": read_time,
            "sources_used": len(params.sources),
            "validation": validation.model_dump(),
            "quality_review": {
                "score": review.overall,
                "passed": review.passed,
                "breakdown": review.scores.model_dump(),
                "issue_count": len(review.issues),
                "critical_issues": len(review.issues_by_severity(Severity.CRITICAL)),
            },
            "revision_instructions": revision_instructions(review) or None,
            "message": message,
        }


def article_capability(writer: ArticleWriter) -> CapabilityDefinition:
    return CapabilityDefinition(
        name="generate_news_article",
        description=(
            "Generate a complete news article from researched sources. Call research_topic "
            "first. Returns the full markdown article with its quality review."
        ),
        parameters=GenerateArticleParams,
        executor=writer,
    )
