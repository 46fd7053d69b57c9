"""
Web search via the Serper.dev Google Search API.

Failures never raise out of ``search()``; they come back as an unsuccessful
``WebSearchResponse`` so callers can carry on without web context.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

SERPER_API_BASE = "https://google.serper.dev"


class WebSearchResult(BaseModel):
    title: str
    snippet: str = ""
    url: str


class WebSearchResponse(BaseModel):
    success: bool
    results: list[WebSearchResult] = Field(default_factory=list)
    error: str | None = None


class SerperClient:
    """
    Async Serper.dev client.

    Args:
        http: Shared HTTP client (owned by the caller)
        api_key: Serper API key
        max_results: Number of organic results requested and returned
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        max_results: int = 5,
        base_url: str = SERPER_API_BASE,
    ):
        self._http = http
        self._api_key = api_key
        self._max_results = max_results
        self._base_url = base_url.rstrip("/")

    async def search(self, query: str) -> WebSearchResponse:
        """Search the web and return at most ``max_results`` organic results."""
        if not self._api_key:
            return WebSearchResponse(success=False, error="Web search is not configured")

        try:
            response = await self._http.post(
                f"{self._base_url}/search",
                json={"q": query, "num": self._max_results},
                headers={"X-API-KEY": self._api_key, "Content-Type": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Web search failed for {query!r}: {e}")
            return WebSearchResponse(success=False, error=str(e))

        organic = payload.get("organic") if isinstance(payload, dict) else None
        if not isinstance(organic, list):
            organic = []

        results: list[WebSearchResult] = []
        for item in organic[: self._max_results]:
            if not isinstance(item, dict) or not item.get("link"):
                continue
            try:
                results.append(
                    WebSearchResult(
                        title=item.get("title") or "",
                        snippet=item.get("snippet") or "",
                        url=item["link"],
                    )
                )
            except ValidationError as e:
                logger.debug(f"Skipping malformed search result {item!r}: {e}")
        logger.debug(f"Web search {query!r} returned {len(results)} results")
        return WebSearchResponse(success=True, results=results)
