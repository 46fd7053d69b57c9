"""Tests for the Serper web search client."""

import json

import httpx
import pytest

from epicgpt.tools.web_search import SerperClient


def _client(handler, api_key: str = "serper-key", max_results: int = 2) -> SerperClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SerperClient(http, api_key, max_results=max_results, base_url="https://serper.test")


def _organic(count: int) -> list[dict]:
    return [
        {"title": f"Result {i}", "snippet": f"Snippet {i}", "link": f"https://site{i}.com"}
        for i in range(count)
    ]


class TestSerperClient:
    @pytest.mark.asyncio
    async def test_maps_and_caps_results(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["key"] = request.headers["X-API-KEY"]
            return httpx.Response(200, json={"organic": _organic(5)})

        response = await _client(handler).search("opx markets")

        assert seen["body"] == {"q": "opx markets", "num": 2}
        assert seen["key"] == "serper-key"
        assert response.success is True
        assert [r.url for r in response.results] == ["https://site0.com", "https://site1.com"]
        assert response.results[0].title == "Result 0"

    @pytest.mark.asyncio
    async def test_no_api_key(self):
        def handler(request):
            raise AssertionError("no request expected")

        response = await _client(handler, api_key="").search("q")
        assert response.success is False
        assert response.results == []

    @pytest.mark.asyncio
    async def test_http_failure_is_unsuccessful_response(self):
        response = await _client(lambda r: httpx.Response(500)).search("q")
        assert response.success is False
        assert response.error

    @pytest.mark.asyncio
    async def test_transport_failure_is_unsuccessful_response(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        response = await _client(handler).search("q")
        assert response.success is False

    @pytest.mark.asyncio
    async def test_no_organic_results(self):
        response = await _client(lambda r: httpx.Response(200, json={})).search("q")
        assert response.success is True
        assert response.results == []

    @pytest.mark.asyncio
    async def test_results_without_link_are_dropped(self):
        organic = [{"title": "No link"}, {"title": "Ok", "link": "https://ok.io"}]
        response = await _client(lambda r: httpx.Response(200, json={"organic": organic})).search("q")
        assert [r.title for r in response.results] == ["Ok"]

    @pytest.mark.asyncio
    async def test_null_snippet_and_title_become_empty(self):
        organic = [
            {"title": "Ok", "snippet": "fine", "link": "https://ok.io"},
            {"title": None, "snippet": None, "link": "https://bare.io"},
        ]
        response = await _client(lambda r: httpx.Response(200, json={"organic": organic})).search("q")

        assert response.success is True
        assert [r.url for r in response.results] == ["https://ok.io", "https://bare.io"]
        assert response.results[1].title == ""
        assert response.results[1].snippet == ""

    @pytest.mark.asyncio
    async def test_malformed_items_are_skipped_individually(self):
        organic = ["not an object", {"title": 7, "link": "https://bad.io"}, {"title": "Ok", "link": "https://ok.io"}]
        response = await _client(
            lambda r: httpx.Response(200, json={"organic": organic}), max_results=3
        ).search("q")

        assert response.success is True
        assert [r.url for r in response.results] == ["https://ok.io"]

    @pytest.mark.asyncio
    async def test_non_object_payload_yields_no_results(self):
        response = await _client(lambda r: httpx.Response(200, json=["unexpected"])).search("q")
        assert response.success is True
        assert response.results == []
