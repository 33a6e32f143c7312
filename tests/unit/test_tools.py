"""Unit tests for the shipped capability executors."""

import json
from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest

from agentcrew.models import ToolCall, ToolContext, ToolErrorKind
from agentcrew.quality import count_words, score
from agentcrew.tools import (
    ArticleWriter,
    ExaClient,
    ExaResult,
    ResearchTools,
    WeatherTool,
    build_default_registry,
)
from agentcrew.tools.article import GenerateArticleParams, build_article_prompt
from agentcrew.tools.research import (
    FindLatestNewsParams,
    ProspectCompanyParams,
    ResearchTopicParams,
    SearchWebParams,
)
from agentcrew.tools.weather import WeatherParams
from agentcrew.utils.config import AppConfig
from agentcrew.utils.exceptions import MissingConfigurationError
from agentcrew.utils.observability import LangfuseClient

CONTEXT = ToolContext(thread_id="t-1", agent_id="scout")

Handler = Callable[[httpx.Request], httpx.Response]


def _hit(title: str, url: str, text: str = "body text", **extra) -> dict:
    return {"title": title, "url": url, "text": text, **extra}


class Recorder:
    """Mock transport handler that records JSON request bodies."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.bodies: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.content:
            self.bodies.append(json.loads(request.content))
        return self.handler(request)


def _exa(recorder: Recorder, api_key: str = "exa-key") -> ExaClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return ExaClient(api_key=api_key, base_url="https://exa.test/", client=client)


class TestExaClient:
    """Tests for the Exa REST client."""

    @pytest.mark.asyncio
    async def test_search_payload(self):
        recorder = Recorder(
            lambda request: httpx.Response(
                200,
                json={
                    "results": [
                        _hit("Acme", "https://acme.test", publishedDate="2025-01-01"),
                    ]
                },
            )
        )
        exa = _exa(recorder)

        results = await exa.search(
            "acme",
            3,
            category="news",
            include_domains=["bbc.com"],
            livecrawl="always",
            highlight_sentences=2,
        )

        request = recorder.requests[0]
        assert str(request.url) == "https://exa.test/search"
        assert request.headers["x-api-key"] == "exa-key"
        assert recorder.bodies[0] == {
            "query": "acme",
            "numResults": 3,
            "contents": {"text": True, "highlights": {"numSentences": 2}, "livecrawl": "always"},
            "category": "news",
            "includeDomains": ["bbc.com"],
        }
        assert results[0].title == "Acme"
        assert results[0].published_date == "2025-01-01"

    @pytest.mark.asyncio
    async def test_find_similar(self):
        recorder = Recorder(lambda request: httpx.Response(200, json={"results": []}))
        exa = _exa(recorder)

        assert await exa.find_similar("https://acme.test", 4) == []
        assert recorder.requests[0].url.path == "/findSimilar"
        assert recorder.bodies[0]["excludeSourceDomain"] is True
        assert recorder.bodies[0]["url"] == "https://acme.test"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        recorder = Recorder(lambda request: httpx.Response(200, json={"results": []}))
        exa = _exa(recorder, api_key="")

        assert not exa.configured
        with pytest.raises(MissingConfigurationError):
            await exa.search("anything")
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        exa = _exa(Recorder(lambda request: httpx.Response(500)))
        with pytest.raises(httpx.HTTPStatusError):
            await exa.search("anything")

    def test_snippet_truncates(self):
        result = ExaResult.model_validate({"url": "https://a.test", "text": "abcdef"})
        assert result.snippet(3) == "abc"
        assert ExaResult(url="https://b.test").snippet(3) == ""


class TestResearchTools:
    """Tests for the Exa-backed capabilities."""

    @pytest.mark.asyncio
    async def test_search_web(self):
        recorder = Recorder(
            lambda request: httpx.Response(
                200, json={"results": [_hit("Page", "https://p.test", "x" * 900)]}
            )
        )
        tools = ResearchTools(_exa(recorder))

        result = await tools.search_web(
            SearchWebParams(query="ai news", specific_domain="bbc.com"), CONTEXT
        )

        assert result["query"] == "ai news"
        assert len(result["results"][0]["snippet"]) == 500
        assert recorder.bodies[0]["includeDomains"] == ["bbc.com"]

    @pytest.mark.asyncio
    async def test_prospect_company_by_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/findSimilar":
                return httpx.Response(503)
            return httpx.Response(200, json={"results": [_hit("Acme", "https://acme.test")]})

        recorder = Recorder(handler)
        tools = ResearchTools(_exa(recorder))

        result = await tools.prospect_company(
            ProspectCompanyParams(company_identifier="acme.test/", find_similar=True), CONTEXT
        )

        assert recorder.bodies[0]["query"] == "https://acme.test/"
        assert recorder.bodies[1]["query"] == "acme.test news"
        assert result["company_info"][0]["title"] == "Acme"
        assert result["similar_companies"] == []

    @pytest.mark.asyncio
    async def test_research_topic_tolerates_failed_searches(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if "gov.uk" in body.get("includeDomains", []):
                return httpx.Response(500)
            return httpx.Response(
                200,
                json={
                    "results": [
                        _hit("Report", "https://r.test"),
                        _hit(None, "https://untitled.test"),
                    ]
                },
            )

        tools = ResearchTools(_exa(Recorder(handler)))

        result = await tools.research_topic(
            ResearchTopicParams(topic="staffing", focus_areas=["pay"]), CONTEXT
        )

        assert result["by_category"] == {"government": 0, "industry": 1, "media": 1}
        assert result["total_sources"] == 2
        assert {s["organisation"] for s in result["sources"]} == {"Industry Body", "News Media"}
        assert result["message"] == "Found 2 sources: 0 government, 1 industry, 1 news"

    @pytest.mark.asyncio
    async def test_find_latest_news(self):
        recorder = Recorder(
            lambda request: httpx.Response(
                200, json={"results": [_hit("Headline", "https://n.test")]}
            )
        )
        tools = ResearchTools(_exa(recorder))

        result = await tools.find_latest_news(
            FindLatestNewsParams(query="AI", timeframe="today", num_results=3), CONTEXT
        )

        body = recorder.bodies[0]
        assert body["category"] == "news"
        assert body["numResults"] == 3
        assert body["startPublishedDate"].endswith("Z")
        assert result["stories"][0]["headline"] == "Headline"


class TestWeatherTool:
    """Tests for get_weather."""

    @pytest.mark.asyncio
    async def test_current_weather(self):
        recorder = Recorder(
            lambda request: httpx.Response(
                200,
                json={
                    "current": {
                        "temperature_2m": 12.5,
                        "weathercode": 3,
                        "relativehumidity_2m": 80,
                    }
                },
            )
        )
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        tool = WeatherTool(base_url="https://weather.test/v1/forecast", client=client)

        result = await tool(WeatherParams(latitude=51.5, longitude=-0.1, city="London"), CONTEXT)

        params = recorder.requests[0].url.params
        assert params["latitude"] == "51.5"
        assert params["timezone"] == "auto"
        assert result == {
            "city": "London",
            "temperature": 12.5,
            "weather_code": 3,
            "humidity": 80,
            "message": "Current weather in London: 12.5°C",
        }


class TestDefaultRegistry:
    """Tests for the shipped registry."""

    def test_names(self):
        registry = build_default_registry(AppConfig())
        assert registry.names() == sorted(
            [
                "search_web",
                "prospect_company",
                "find_people",
                "search_for_context",
                "research_market",
                "research_topic",
                "find_latest_news",
                "review_article_quality",
                "get_weather",
            ]
        )

    @pytest.mark.asyncio
    async def test_unconfigured_exa_reports_execution_failure(self):
        registry = build_default_registry(AppConfig())
        result = await registry.invoke(
            ToolCall(call_id="1", name="search_web", arguments={"query": "x"}), CONTEXT
        )
        assert result.error.kind == ToolErrorKind.EXECUTION_FAILURE
        assert "EXA_API_KEY" in result.error.message

    @pytest.mark.asyncio
    async def test_quality_capability(self):
        registry = build_default_registry(AppConfig())
        result = await registry.invoke(
            ToolCall(
                call_id="1",
                name="review_article_quality",
                arguments={"article": "Pay figures TBC. Vacancies TBD. Turnover N/A."},
            ),
            CONTEXT,
        )
        assert result.ok
        assert result.payload["score"] == 66
        assert result.payload["passed"] is False
        assert result.payload["message"].startswith("Article needs revision")

    @pytest.mark.asyncio
    async def test_quality_score_recorded_on_trace(self):
        observability = MagicMock(spec=LangfuseClient)
        registry = build_default_registry(AppConfig(), observability=observability)
        call = ToolCall(
            call_id="1",
            name="review_article_quality",
            arguments={"article": "Pay figures TBC. Vacancies TBD. Turnover N/A."},
        )

        await registry.invoke(call, CONTEXT)
        observability.score.assert_not_called()

        traced = ToolContext(thread_id="t-1", agent_id="chronicle", trace_id="trace-1")
        await registry.invoke(call, traced)
        observability.score.assert_called_once_with(
            "trace-1", "article_quality", 66, comment="chronicle"
        )


DRAFT = """---
title: "Care Worker Pay Rises"
slug: care-worker-pay-rises
excerpt: Pay for care workers rose in 2025.
publishedAt: 2025-04-01
category: analysis
readTime: 1
author: CareScope Intelligence
tags: [pay]
---

According to Skills for Care, median pay for care workers rose to £12.00 an hour in 2025,
an increase of 8.3% on the previous year. Vacancies remain high across England, which
suggests providers still struggle to recruit and retain staff.

## Sources

1. **Skills for Care**, The State of the Adult Social Care Sector (2025): https://sfc.test
"""

SOURCE = {
    "title": "The State of the Adult Social Care Sector",
    "url": "https://sfc.test",
    "organisation": "Skills for Care",
    "category": "industry",
    "snippet": "Median pay rose to £12.00.",
}


class TestArticleWriter:
    """Tests for generate_news_article."""

    def test_prompt_lists_sources_and_angle(self):
        params = GenerateArticleParams(
            topic="Care worker pay", sources=[SOURCE], angle="regional disparities"
        )
        prompt = build_article_prompt(params)
        assert prompt.startswith("Write a comprehensive news article about: Care worker pay")
        assert "ANGLE/FOCUS: regional disparities" in prompt
        assert '[1] INDUSTRY: "The State of the Adult Social Care Sector" - Skills for Care' in prompt
        assert "    URL: https://sfc.test" in prompt

    @pytest.mark.asyncio
    async def test_drafts_and_reviews(self, provider):
        provider.chat_answer = DRAFT
        observability = MagicMock(spec=LangfuseClient)
        writer = ArticleWriter(provider, observability=observability)
        context = ToolContext(thread_id="t-1", agent_id="chronicle", trace_id="trace-1")

        result = await writer(
            GenerateArticleParams(topic="Care worker pay", sources=[SOURCE]), context
        )

        assert "Care worker pay" in provider.chat_calls[0][0]["content"]
        expected = score(DRAFT)
        assert result["article"] == DRAFT
        assert result["title"] == "Care Worker Pay Rises"
        assert result["word_count"] == count_words(DRAFT)
        assert result["read_time"] == 1
        assert result["sources_used"] == 1
        assert result["validation"] == {"valid": True, "errors": []}
        assert result["quality_review"]["score"] == expected.overall
        assert result["quality_review"]["issue_count"] == len(expected.issues)
        assert result["message"].startswith(
            f'Article generated: "Care Worker Pay Rises" ({count_words(DRAFT)} words, '
            "1 min read, 1 sources). Quality:"
        )
        observability.score.assert_called_once_with(
            "trace-1", "article_quality", expected.overall, comment="chronicle"
        )

    @pytest.mark.asyncio
    async def test_invalid_draft_reported(self, provider):
        provider.chat_answer = "Just a few words."
        writer = ArticleWriter(provider, observability=LangfuseClient(enabled=False))

        result = await writer(
            GenerateArticleParams(topic="Care worker pay", sources=[SOURCE]), CONTEXT
        )

        assert result["title"] == "Care worker pay"
        assert result["validation"]["errors"] == ["Missing metadata header"]
        assert result["message"].startswith(
            "Article generated with validation issues: Missing metadata header."
        )

    @pytest.mark.asyncio
    async def test_registered_with_provider(self, provider):
        registry = build_default_registry(AppConfig(), provider=provider)
        assert "generate_news_article" in registry.names()

        missing = await registry.invoke(
            ToolCall(call_id="1", name="generate_news_article", arguments={"topic": "pay"}),
            CONTEXT,
        )
        assert missing.error.kind == ToolErrorKind.INVALID_ARGUMENTS
        assert missing.error.fields == ["sources"]

        provider.chat_error = RuntimeError("model down")
        failed = await registry.invoke(
            ToolCall(
                call_id="2",
                name="generate_news_article",
                arguments={"topic": "pay", "sources": [SOURCE]},
            ),
            CONTEXT,
        )
        assert failed.error.kind == ToolErrorKind.EXECUTION_FAILURE
