"""Exa search API client.

Thin async wrapper over the ``/search`` and ``/findSimilar`` endpoints.
Results are returned as ``ExaResult`` models; HTTP errors propagate as
``httpx.HTTPStatusError`` so the capability registry reports them as
execution failures.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from agentcrew.utils.config import ExaConfig
from agentcrew.utils.exceptions import MissingConfigurationError
from agentcrew.utils.logging import get_logger

logger = get_logger(__name__)


class ExaResult(BaseModel):
    """One search hit."""

    title: str | None = None
    url: str
    text: str | None = None
    highlights: list[str] = Field(default_factory=list)
    published_date: str | None = Field(default=None, alias="publishedDate")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def snippet(self, limit: int) -> str:
        return (self.text or "")[:limit]


class ExaClient:
    """Async client for the Exa search API.

    Args:
        api_key: Exa API key. Calls fail with MissingConfigurationError
            when it is empty.
        base_url: API root.
        timeout: Per-request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient``; one is created
            lazily otherwise.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.exa.ai",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: ExaConfig) -> ExaClient:
        return cls(api_key=config.api_key, base_url=config.base_url, timeout=config.timeout)

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _post(self, path: str, payload: dict[str, Any]) -> list[ExaResult]:
        if not self._api_key:
            raise MissingConfigurationError("EXA_API_KEY")

        response = await self._http().post(
            f"{self._base_url}{path}",
            json=payload,
            headers={"x-api-key": self._api_key, "Content-Type": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        results = response.json().get("results", [])
        logger.debug("Exa request completed", path=path, results=len(results))
        return [ExaResult.model_validate(item) for item in results]

    @staticmethod
    def _contents(text: bool, highlight_sentences: int | None) -> dict[str, Any]:
        contents: dict[str, Any] = {"text": text}
        if highlight_sentences:
            contents["highlights"] = {"numSentences": highlight_sentences}
        return contents

    async def search(
        self,
        query: str,
        num_results: int = 5,
        *,
        category: str | None = None,
        include_domains: list[str] | None = None,
        start_published_date: str | None = None,
        livecrawl: str | None = None,
        text: bool = True,
        highlight_sentences: int | None = None,
    ) -> list[ExaResult]:
        """Search the web and return results with page contents.

        Args:
            query: Search query.
            num_results: Maximum number of results.
            category: Optional Exa category (``news``, ``company``, ...).
            include_domains: Restrict results to these domains.
            start_published_date: ISO date; only newer documents.
            livecrawl: ``always`` or ``fallback``.
            text: Include page text.
            highlight_sentences: Include highlights of this many sentences.

        Raises:
            MissingConfigurationError: If no API key is configured.
            httpx.HTTPError: On transport or status errors.
        """
        payload: dict[str, Any] = {
            "query": query,
            "numResults": num_results,
            "contents": self._contents(text, highlight_sentences),
        }
        if category:
            payload["category"] = category
        if include_domains:
            payload["includeDomains"] = include_domains
        if start_published_date:
            payload["startPublishedDate"] = start_published_date
        if livecrawl:
            payload["contents"]["livecrawl"] = livecrawl
        return await self._post("/search", payload)

    async def find_similar(
        self,
        url: str,
        num_results: int = 5,
        *,
        exclude_source_domain: bool = True,
        text: bool = True,
        highlight_sentences: int | None = None,
    ) -> list[ExaResult]:
        """Find pages similar to ``url``."""
        payload: dict[str, Any] = {
            "url": url,
            "numResults": num_results,
            "excludeSourceDomain": exclude_source_domain,
            "contents": self._contents(text, highlight_sentences),
        }
        return await self._post("/findSimilar", payload)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
