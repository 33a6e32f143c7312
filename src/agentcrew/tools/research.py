"""Research capabilities backed by Exa search.

Scout: search_web, prospect_company, find_people
Sage: search_for_context, research_market
Chronicle: research_topic
Trends: find_latest_news
"""

from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from agentcrew.models import CapabilityDefinition, ToolContext
from agentcrew.utils.logging import get_logger

from .exa import ExaClient, ExaResult

logger = get_logger(__name__)

MAX_PEOPLE = 10

GOVERNMENT_DOMAINS = ["gov.uk", "cqc.org.uk", "nhs.uk"]
INDUSTRY_DOMAINS = [
    "kingsfund.org.uk",
    "nuffieldtrust.org.uk",
    "health.org.uk",
    "skillsforcare.org.uk",
]

TIMEFRAME_DAYS = {"today": 1, "this_week": 7, "this_month": 30}


# ----------------------------------------------------------------------
# Parameter schemas
# ----------------------------------------------------------------------


class SearchWebParams(BaseModel):
    query: str = Field(..., min_length=1, description="Search query")
    specific_domain: str | None = Field(
        default=None, description="Optional specific domain to search (e.g. bbc.com)"
    )


class ProspectCompanyParams(BaseModel):
    company_identifier: str = Field(
        ..., min_length=1, description="Company name, website URL, or description"
    )
    find_similar: bool = Field(
        default=False, description="Whether to also find similar/competitor companies"
    )


class FindPeopleParams(BaseModel):
    query: str = Field(
        ...,
        min_length=1,
        description='Description of people to find (e.g. "CTOs at AI startups")',
    )
    num_results: int = Field(default=5, ge=1, description="Number of people to find (max 10)")


class SearchForContextParams(BaseModel):
    query: str = Field(..., min_length=1, description="Search query for background information")


class ResearchMarketParams(BaseModel):
    topic: str = Field(
        ...,
        min_length=1,
        description='Market or topic to research (e.g. "UK social care market")',
    )
    include_competitors: bool = Field(
        default=False, description="Whether to include competitive landscape"
    )


class ResearchTopicParams(BaseModel):
    topic: str = Field(
        ...,
        min_length=1,
        description='The UK social care topic to research, e.g. "CQC domiciliary care inspection failures"',
    )
    focus_areas: list[str] = Field(
        default_factory=list,
        description='Specific aspects to focus on, e.g. ["funding", "staffing"]',
    )


class FindLatestNewsParams(BaseModel):
    query: str = Field(
        default="UK social care", description="Topic to find recent news about"
    )
    timeframe: Literal["today", "this_week", "this_month"] = Field(
        default="this_week", description="How far back to look"
    )
    num_results: int = Field(default=5, ge=1, le=10, description="Number of stories")


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _is_url(identifier: str) -> bool:
    return "." in identifier and " " not in identifier


def _normalize_url(identifier: str) -> str:
    return identifier if identifier.startswith("http") else f"https://{identifier}"


def _bare_domain(identifier: str) -> str:
    return re.sub(r"/$", "", re.sub(r"^https?://", "", identifier))


async def _optional(label: str, call: Any) -> list[ExaResult]:
    """Await an auxiliary search, degrading to no results on HTTP errors."""
    try:
        return await call
    except httpx.HTTPError as e:
        logger.warning("Auxiliary search failed", search=label, error=str(e))
        return []


# ----------------------------------------------------------------------
# Executors
# ----------------------------------------------------------------------


class ResearchTools:
    """Exa-backed executors sharing one client."""

    def __init__(self, exa: ExaClient) -> None:
        self.exa = exa

    async def search_web(self, params: SearchWebParams, context: ToolContext) -> dict[str, Any]:
        results = await self.exa.search(
            params.query,
            5,
            include_domains=[params.specific_domain] if params.specific_domain else None,
            livecrawl="always",
        )
        return {
            "query": params.query,
            "results": [
                {"title": r.title, "url": r.url, "snippet": r.snippet(500)} for r in results
            ],
        }

    async def prospect_company(
        self, params: ProspectCompanyParams, context: ToolContext
    ) -> dict[str, Any]:
        identifier = params.company_identifier
        if _is_url(identifier):
            company = await self.exa.search(
                _normalize_url(identifier), 3, livecrawl="always", highlight_sentences=3
            )
            news_query = _bare_domain(identifier)
        else:
            company = await self.exa.search(
                f"{identifier} company",
                3,
                category="company",
                livecrawl="always",
                highlight_sentences=3,
            )
            news_query = identifier

        news = await _optional(
            "company_news",
            self.exa.search(f"{news_query} news", 3, category="news", livecrawl="always"),
        )

        result: dict[str, Any] = {
            "company_identifier": identifier,
            "company_info": [
                {
                    "title": r.title,
                    "url": r.url,
                    "description": r.snippet(1000),
                    "highlights": r.highlights,
                }
                for r in company
            ],
            "news_and_updates": [
                {
                    "title": r.title,
                    "url": r.url,
                    "snippet": r.snippet(500),
                    "published_date": r.published_date,
                }
                for r in news
            ],
        }

        if params.find_similar:
            similar: list[ExaResult] = []
            if company:
                similar = await _optional(
                    "similar_companies",
                    self.exa.find_similar(company[0].url, 5, highlight_sentences=2),
                )
            result["similar_companies"] = [
                {
                    "title": r.title,
                    "url": r.url,
                    "description": " ".join(r.highlights) or r.snippet(300),
                }
                for r in similar
            ]

        return result

    async def find_people(self, params: FindPeopleParams, context: ToolContext) -> dict[str, Any]:
        results = await self.exa.search(
            params.query, min(params.num_results, MAX_PEOPLE), category="people"
        )
        return {
            "query": params.query,
            "people": [
                {"name": r.title, "profile_url": r.url, "summary": r.snippet(500)}
                for r in results
            ],
        }

    async def search_for_context(
        self, params: SearchForContextParams, context: ToolContext
    ) -> dict[str, Any]:
        results = await self.exa.search(params.query, 5, livecrawl="fallback")
        return {
            "query": params.query,
            "results": [
                {
                    "title": r.title,
                    "url": r.url,
                    "snippet": r.snippet(800),
                    "published_date": r.published_date,
                }
                for r in results
            ],
        }

    async def research_market(
        self, params: ResearchMarketParams, context: ToolContext
    ) -> dict[str, Any]:
        year = datetime.now(UTC).year
        overview, trends = await asyncio.gather(
            self.exa.search(
                f"{params.topic} market overview {year - 1} {year}", 4, livecrawl="fallback"
            ),
            self.exa.search(
                f"{params.topic} trends analysis",
                3,
                category="research paper",
                livecrawl="fallback",
            ),
        )

        result: dict[str, Any] = {
            "topic": params.topic,
            "overview": [
                {"title": r.title, "url": r.url, "content": r.snippet(1000)} for r in overview
            ],
            "trends": [
                {"title": r.title, "url": r.url, "content": r.snippet(1000)} for r in trends
            ],
        }

        if params.include_competitors:
            competitors = await _optional(
                "competitors",
                self.exa.search(
                    f"{params.topic} key players companies",
                    3,
                    category="company",
                    livecrawl="fallback",
                ),
            )
            result["competitors"] = [
                {"title": r.title, "url": r.url, "description": r.snippet(500)}
                for r in competitors
            ]

        return result

    async def research_topic(
        self, params: ResearchTopicParams, context: ToolContext
    ) -> dict[str, Any]:
        year = datetime.now(UTC).year
        focus = f" {' '.join(params.focus_areas)}" if params.focus_areas else ""
        searches = [
            (
                "government",
                "UK Government",
                self.exa.search(
                    f"{params.topic}{focus} UK government CQC report",
                    4,
                    include_domains=GOVERNMENT_DOMAINS,
                    livecrawl="fallback",
                ),
            ),
            (
                "industry",
                "Industry Body",
                self.exa.search(
                    f"{params.topic}{focus} care sector analysis",
                    4,
                    include_domains=INDUSTRY_DOMAINS,
                    livecrawl="fallback",
                ),
            ),
            (
                "media",
                "News Media",
                self.exa.search(
                    f"{params.topic}{focus} UK {year - 1} {year}",
                    4,
                    category="news",
                    livecrawl="fallback",
                ),
            ),
        ]

        outcomes = await asyncio.gather(
            *(_optional(category, call) for category, _, call in searches)
        )

        sources: list[dict[str, Any]] = []
        by_category: dict[str, int] = {}
        for (category, organisation, _), results in zip(searches, outcomes, strict=True):
            kept = [r for r in results if r.title and r.url]
            by_category[category] = len(kept)
            sources.extend(
                {
                    "title": r.title,
                    "url": r.url,
                    "organisation": organisation,
                    "category": category,
                    "snippet": r.snippet(300),
                    "published_date": r.published_date,
                }
                for r in kept
            )

        return {
            "topic": params.topic,
            "sources": sources,
            "total_sources": len(sources),
            "by_category": by_category,
            "message": (
                f"Found {len(sources)} sources: {by_category['government']} government, "
                f"{by_category['industry']} industry, {by_category['media']} news"
            ),
        }

    async def find_latest_news(
        self, params: FindLatestNewsParams, context: ToolContext
    ) -> dict[str, Any]:
        since = datetime.now(UTC) - timedelta(days=TIMEFRAME_DAYS[params.timeframe])
        results = await self.exa.search(
            f"latest {params.query} news",
            params.num_results,
            category="news",
            start_published_date=since.strftime("%Y-%m-%dT%H:%M:%SZ"),
            livecrawl="fallback",
        )
        return {
            "query": params.query,
            "timeframe": params.timeframe,
            "stories": [
                {
                    "headline": r.title,
                    "url": r.url,
                    "summary": r.snippet(400),
                    "published_date": r.published_date,
                }
                for r in results
            ],
        }


def research_capabilities(exa: ExaClient) -> list[CapabilityDefinition]:
    """Capability definitions for every Exa-backed executor."""
    tools = ResearchTools(exa)
    return [
        CapabilityDefinition(
            name="search_web",
            description=(
                "Search the web for information. Returns relevant results with content snippets."
            ),
            parameters=SearchWebParams,
            executor=tools.search_web,
        ),
        CapabilityDefinition(
            name="prospect_company",
            description=(
                "Research a company for intelligence gathering. Can find by name or URL. "
                "Optionally include competitors."
            ),
            parameters=ProspectCompanyParams,
            executor=tools.prospect_company,
        ),
        CapabilityDefinition(
            name="find_people",
            description=(
                "Find professionals on LinkedIn and the web. Great for finding decision "
                "makers, executives, or people with specific roles."
            ),
            parameters=FindPeopleParams,
            executor=tools.find_people,
        ),
        CapabilityDefinition(
            name="search_for_context",
            description=(
                "Search the web for information to inform analysis. "
                "Use this to gather facts before analysing."
            ),
            parameters=SearchForContextParams,
            executor=tools.search_for_context,
        ),
        CapabilityDefinition(
            name="research_market",
            description=(
                "Research a market, industry, or topic for strategic analysis. "
                "Gathers multiple perspectives."
            ),
            parameters=ResearchMarketParams,
            executor=tools.research_market,
        ),
        CapabilityDefinition(
            name="research_topic",
            description=(
                "Deep research on a UK social care topic for writing a news article. Finds "
                "and categorises sources from government, industry and news sources. "
                "Use this first before writing an article."
            ),
            parameters=ResearchTopicParams,
            executor=tools.research_topic,
        ),
        CapabilityDefinition(
            name="find_latest_news",
            description=(
                "Find recent news stories on a topic, newest first, with sources. "
                "Use for trending topics and roundups."
            ),
            parameters=FindLatestNewsParams,
            executor=tools.find_latest_news,
        ),
    ]
