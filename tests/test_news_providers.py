"""Tests for news provider adapters."""

import httpx
import pytest

from portfolio_explainer.config import Settings
from portfolio_explainer.errors import ConfigurationError
from portfolio_explainer.services.news import (
    NewsProviderError, PolygonNewsProvider, create_news_provider,
)


POLYGON_PAYLOAD = {
    "status": "OK",
    "results": [
        {
            "title": "Apple unveils new chips",
            "article_url": "https://news.example.com/apple-chips",
            "publisher": {"name": "Example Wire"},
            "published_utc": "2026-10-15T14:00:00Z",
        },
        {
            "title": "",
            "article_url": "https://news.example.com/untitled",
            "publisher": {"name": "Example Wire"},
        },
        {
            "title": "Apple supplier update",
            "article_url": "https://news.example.com/supplier",
            "published_utc": "2026-10-14T09:30:00Z",
        },
    ],
}


def make_provider(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PolygonNewsProvider(
        api_key=api_key,
        base_url="https://polygon.test/",
        client=client,
    )


@pytest.mark.asyncio
async def test_polygon_maps_results():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=POLYGON_PAYLOAD)

    provider = make_provider(handler)
    articles = await provider.fetch_news("AAPL", days=7, limit=3)

    assert seen["path"] == "/v2/reference/news"
    assert seen["params"]["ticker"] == "AAPL"
    assert seen["params"]["limit"] == "3"
    assert seen["params"]["apiKey"] == "test-key"
    assert "published_utc.gte" in seen["params"]

    # Untitled items are dropped
    assert [a.title for a in articles] == ["Apple unveils new chips", "Apple supplier update"]
    assert articles[0].publisher == "Example Wire"
    assert articles[0].published_at == "2026-10-15T14:00:00Z"
    assert articles[1].publisher is None


@pytest.mark.asyncio
async def test_polygon_http_error_raises():
    provider = make_provider(lambda request: httpx.Response(429, json={"status": "ERROR"}))

    with pytest.raises(NewsProviderError, match="HTTP 429"):
        await provider.fetch_news("AAPL", days=7, limit=3)


@pytest.mark.asyncio
async def test_polygon_missing_key_raises_without_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=POLYGON_PAYLOAD)

    provider = make_provider(handler, api_key="")

    with pytest.raises(NewsProviderError):
        await provider.fetch_news("AAPL", days=7, limit=3)
    assert calls == []


@pytest.mark.asyncio
async def test_polygon_empty_results():
    provider = make_provider(lambda request: httpx.Response(200, json={"status": "OK"}))

    assert await provider.fetch_news("ZZZZ", days=7, limit=3) == []


def test_factory_builds_polygon_provider():
    settings = Settings()
    settings.news_provider = "polygon"
    settings.polygon_api_key = "key"

    provider = create_news_provider(settings)

    assert isinstance(provider, PolygonNewsProvider)
    assert provider.name == "polygon"


def test_factory_rejects_unknown_provider():
    settings = Settings()
    settings.news_provider = "carrier-pigeon"

    with pytest.raises(ConfigurationError):
        create_news_provider(settings)
