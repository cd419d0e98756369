"""
Tavily Search Service
=====================

Web search used to ground AI answers and generated steps with real URLs,
phone numbers and fees.
"""

import logging
from typing import Optional

import httpx

from gather.config import settings

logger = logging.getLogger(__name__)


class TavilySearchService:
    """Thin async client for the Tavily search API."""

    BASE_URL = "https://api.tavily.com/search"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.TAVILY_API_KEY

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str, max_results: int = 5) -> Optional[dict]:
        """
        Run a basic-depth search.

        Args:
            query: Search query
            max_results: Number of results to request

        Returns:
            ``{"answer": str|None, "results": [{title, url, content}]}`` or
            None if search is unavailable or the request failed
        """
        if not self.is_configured:
            logger.warning("Tavily search requested but TAVILY_API_KEY is not set")
            return None

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.BASE_URL,
                    json={
                        "api_key": self.api_key,
                        "query": query,
                        "search_depth": "basic",
                        "include_answer": True,
                        "max_results": max_results,
                    },
                    timeout=10.0,
                )

                if response.status_code != 200:
                    logger.error(
                        "Tavily search failed with status %s for query %r",
                        response.status_code,
                        query,
                    )
                    return None

                data = response.json()
                return {
                    "answer": data.get("answer"),
                    "results": [
                        {
                            "title": r.get("title", ""),
                            "url": r.get("url", ""),
                            "content": r.get("content", ""),
                        }
                        for r in data.get("results") or []
                    ],
                }

            except httpx.TimeoutException:
                logger.error("Tavily search timeout for query %r", query)
                return None
            except Exception as e:
                logger.error("Tavily search error for query %r: %s", query, e)
                return None


def format_search_results(results: Optional[dict]) -> str:
    """Render search results as tool output for the model."""
    if results is None:
        return "Search failed"

    output = ""
    if results.get("answer"):
        output += f"Summary: {results['answer']}\n\n"

    items = results.get("results") or []
    if items:
        output += "Sources:\n"
        for item in items[:3]:
            output += f"- {item['title']}: {item['url']}\n  {item['content'][:200]}...\n"

    return output or "No results found"


# Singleton instance
_search_service: Optional[TavilySearchService] = None


def get_search_service() -> TavilySearchService:
    """Get or create search service instance."""
    global _search_service

    if _search_service is None:
        _search_service = TavilySearchService()

    return _search_service
