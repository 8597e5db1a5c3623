"""News providers used to gather per-symbol evidence."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..config import NewsProviderName, Settings
from ..errors import ConfigurationError
from ..models import NewsArticle

logger = logging.getLogger(__name__)


class NewsProvider(Protocol):
    """Anything that can fetch recent articles for a symbol."""

    name: str

    async def fetch_news(self, symbol: str, days: int, limit: int) -> List[NewsArticle]:
        ...


class NewsProviderError(Exception):
    """A provider call failed for one symbol."""


class PolygonNewsProvider:
    """Polygon.io ``/v2/reference/news`` over httpx."""

    name = NewsProviderName.POLYGON.value

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.polygon.io",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        if not api_key:
            logger.warning("POLYGON_API_KEY is not set; news fetches will fail")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def fetch_news(self, symbol: str, days: int, limit: int) -> List[NewsArticle]:
        if not self.api_key:
            raise NewsProviderError("Missing POLYGON_API_KEY")

        since = (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%d")
        params = {
            "ticker": symbol,
            "published_utc.gte": since,
            "order": "desc",
            "sort": "published_utc",
            "limit": limit,
            "apiKey": self.api_key,
        }
        url = f"{self.base_url}/v2/reference/news"

        if self._client is not None:
            response = await self._client.get(url, params=params, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)

        if response.status_code != 200:
            raise NewsProviderError(
                f"Polygon news request for {symbol} failed with HTTP {response.status_code}"
            )

        results = response.json().get("results") or []
        articles = [self._to_article(item) for item in results[:limit]]
        return [a for a in articles if a is not None]

    @staticmethod
    def _to_article(item: Dict[str, Any]) -> Optional[NewsArticle]:
        title = (item.get("title") or "").strip()
        url = (item.get("article_url") or "").strip()
        if not title or not url:
            return None
        publisher = item.get("publisher") or {}
        return NewsArticle(
            title=title,
            url=url,
            publisher=publisher.get("name") if isinstance(publisher, dict) else None,
            published_at=item.get("published_utc"),
        )


class AlpacaNewsProvider:
    """Alpaca market news via alpaca-py's NewsClient."""

    name = NewsProviderName.ALPACA.value

    def __init__(self, api_key: str, secret_key: str):
        from alpaca.data.historical.news import NewsClient

        self.client = NewsClient(api_key=api_key, secret_key=secret_key)

    async def fetch_news(self, symbol: str, days: int, limit: int) -> List[NewsArticle]:
        from alpaca.data.requests import NewsRequest

        request = NewsRequest(
            symbols=symbol,
            start=datetime.now(timezone.utc) - timedelta(days=days),
            limit=limit,
        )
        loop = asyncio.get_event_loop()
        news_set = await loop.run_in_executor(None, self.client.get_news, request)

        articles = []
        for item in news_set.data.get("news", [])[:limit]:
            if not item.headline or not item.url:
                continue
            articles.append(NewsArticle(
                title=item.headline,
                url=item.url,
                publisher=item.source,
                published_at=item.created_at.isoformat() if item.created_at else None,
            ))
        return articles


def create_news_provider(settings: Settings) -> NewsProvider:
    """Build the configured provider; unknown names are a configuration error."""
    if settings.news_provider == NewsProviderName.POLYGON.value:
        return PolygonNewsProvider(
            api_key=settings.polygon_api_key,
            base_url=settings.polygon_base_url,
            timeout=settings.news_fetch_timeout,
        )
    if settings.news_provider == NewsProviderName.ALPACA.value:
        return AlpacaNewsProvider(
            api_key=settings.alpaca_api_key,
            secret_key=settings.alpaca_secret_key,
        )
    raise ConfigurationError(f"Unknown news provider: {settings.news_provider}")
