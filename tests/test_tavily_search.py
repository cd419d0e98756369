"""
Tavily Search Tests
===================
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from gather.services.tavily_search import TavilySearchService, format_search_results


def _patched_client(response=None, error=None):
    client = AsyncMock()
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    patcher = patch("gather.services.tavily_search.httpx.AsyncClient")
    client_cls = patcher.start()
    client_cls.return_value.__aenter__.return_value = client
    return patcher, client


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


class TestSearch:

    @pytest.mark.asyncio
    async def test_not_configured(self):
        with patch("gather.services.tavily_search.httpx.AsyncClient") as client_cls:
            result = await TavilySearchService(api_key="").search("passport fee")

        assert result is None
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_success(self):
        payload = {
            "answer": "It costs $130.",
            "results": [{"title": "Fees", "url": "https://travel.state.gov/fees", "content": "Adult renewal $130", "score": 0.9}],
        }
        patcher, client = _patched_client(_response(payload=payload))
        try:
            result = await TavilySearchService(api_key="tvly-test").search("passport fee", max_results=3)
        finally:
            patcher.stop()

        assert result == {
            "answer": "It costs $130.",
            "results": [{"title": "Fees", "url": "https://travel.state.gov/fees", "content": "Adult renewal $130"}],
        }
        body = client.post.call_args.kwargs["json"]
        assert body["query"] == "passport fee"
        assert body["max_results"] == 3
        assert body["include_answer"] is True

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        patcher, _ = _patched_client(_response(status_code=500))
        try:
            result = await TavilySearchService(api_key="tvly-test").search("passport fee")
        finally:
            patcher.stop()

        assert result is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        patcher, _ = _patched_client(error=httpx.TimeoutException("slow"))
        try:
            result = await TavilySearchService(api_key="tvly-test").search("passport fee")
        finally:
            patcher.stop()

        assert result is None


class TestFormatSearchResults:

    def test_failed(self):
        assert format_search_results(None) == "Search failed"

    def test_empty(self):
        assert format_search_results({"answer": None, "results": []}) == "No results found"

    def test_summary_and_top_three_sources(self):
        results = {
            "answer": "It costs $130.",
            "results": [
                {"title": f"Source {i}", "url": f"https://example.com/{i}", "content": "x" * 300}
                for i in range(5)
            ],
        }

        output = format_search_results(results)

        assert output.startswith("Summary: It costs $130.\n\nSources:\n")
        assert "Source 2" in output
        assert "Source 3" not in output
        assert ("x" * 200 + "...") in output
        assert ("x" * 201) not in output
