"""Bounded-concurrency evidence gathering and research brief assembly."""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from ..config import Settings
from ..errors import ConfigurationError
from ..models import (
    CITATION_URL_PATTERN, BriefScope, Citation, EvidenceBundle, EvidenceMeta,
    FetchError, NewsArticle, ResearchBrief, SymbolScope,
)
from .news import NewsProvider

logger = logging.getLogger(__name__)

MAX_BRIEF_CITATIONS = 50
_CITATION_URL = re.compile(CITATION_URL_PATTERN)


@dataclass(frozen=True)
class EvidenceConfig:
    """Fetch window, per-symbol cap, pool size and per-call timeout."""
    days: int = 7
    per_symbol_limit: int = 3
    concurrency: int = 3
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EvidenceConfig":
        return cls(
            days=settings.research_window_days,
            per_symbol_limit=settings.research_per_symbol_limit,
            concurrency=settings.news_fetch_concurrency,
            timeout_seconds=settings.news_fetch_timeout,
        )

    def validate(self) -> None:
        # Upper bounds match the research brief schema
        if not 1 <= self.days <= 365:
            raise ConfigurationError(f"days must be within 1..365, got {self.days}")
        if not 1 <= self.per_symbol_limit <= 10:
            raise ConfigurationError(
                f"per_symbol_limit must be within 1..10, got {self.per_symbol_limit}"
            )
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {self.concurrency}")
        if not self.timeout_seconds > 0:
            raise ConfigurationError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )


@dataclass(frozen=True)
class FetchResult:
    symbol: str
    articles: List[NewsArticle]
    error: Optional[str] = None


async def fetch_one_symbol(
    provider: NewsProvider,
    symbol: str,
    config: EvidenceConfig,
) -> FetchResult:
    """Fetch one symbol; failures and timeouts become an error result."""
    try:
        articles = await asyncio.wait_for(
            provider.fetch_news(symbol, days=config.days, limit=config.per_symbol_limit),
            timeout=config.timeout_seconds,
        )
        articles = list(articles)[:config.per_symbol_limit]
    except asyncio.TimeoutError:
        message = f"Timed out after {config.timeout_seconds}s"
        logger.warning(f"News fetch for {symbol} failed: {message}")
        return FetchResult(symbol=symbol, articles=[], error=message)
    except Exception as e:
        message = str(e) or e.__class__.__name__
        logger.warning(f"News fetch for {symbol} failed: {message}")
        return FetchResult(symbol=symbol, articles=[], error=message)

    return FetchResult(symbol=symbol, articles=articles)


def _results_to_mapping(results: Sequence[FetchResult]) -> Dict[str, List[NewsArticle]]:
    return {r.symbol: r.articles for r in results}


def _count_articles(mapping: Dict[str, List[NewsArticle]]) -> int:
    return sum(len(articles) for articles in mapping.values())


def _unique(symbols: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(symbols))


async def fetch_evidence(
    scope: Optional[SymbolScope],
    provider: Optional[NewsProvider],
    config: Optional[EvidenceConfig] = None,
) -> EvidenceBundle:
    """Fetch news for every scoped symbol with at most ``concurrency`` calls in flight.

    A failing symbol never aborts the batch: it contributes an empty article
    list and an entry in ``meta.errors``. Errors keep submission order
    (holdings first, then diversifiers) regardless of completion order.
    """
    config = config or EvidenceConfig()
    if scope is None:
        raise ConfigurationError("Research scope missing; compute scope before fetching")
    if provider is None:
        raise ConfigurationError("No news provider configured")
    config.validate()

    as_of = datetime.now(timezone.utc).isoformat()
    limiter = asyncio.Semaphore(config.concurrency)

    async def limited(symbol: str) -> FetchResult:
        async with limiter:
            return await fetch_one_symbol(provider, symbol, config)

    submitted = list(scope.holdings_symbols) + list(scope.diversifier_tickers)
    logger.info(
        f"Fetching news for {len(submitted)} symbols via {provider.name} "
        f"(concurrency={config.concurrency})"
    )
    results = await asyncio.gather(*(limited(symbol) for symbol in submitted))

    split = len(scope.holdings_symbols)
    holdings_results = results[:split]
    diversifier_results = results[split:]

    holdings = _results_to_mapping(holdings_results)
    diversifiers = _results_to_mapping(diversifier_results)
    errors = [
        FetchError(symbol=r.symbol, message=r.error)
        for r in results
        if r.error is not None
    ]

    total_articles = _count_articles(holdings) + _count_articles(diversifiers)
    logger.info(
        f"Evidence bundle built: {total_articles} articles, {len(errors)} failed symbols"
    )

    return EvidenceBundle(
        as_of=as_of,
        window_days=config.days,
        per_symbol_limit=config.per_symbol_limit,
        holdings=holdings,
        diversifiers=diversifiers,
        meta=EvidenceMeta(
            provider=provider.name,
            fetched_symbols=_unique(submitted),
            total_articles=total_articles,
            errors=errors,
        ),
    )


def collect_citations(bundle: EvidenceBundle, limit: int = MAX_BRIEF_CITATIONS) -> List[Citation]:
    """Deduplicated (by URL) citation roll-up, holdings first, capped at ``limit``."""
    citations: List[Citation] = []
    seen_urls = set()
    for group in (bundle.holdings, bundle.diversifiers):
        for articles in group.values():
            for article in articles:
                if article.url in seen_urls:
                    continue
                if not article.title or not _CITATION_URL.fullmatch(article.url):
                    continue
                seen_urls.add(article.url)
                citations.append(Citation(
                    title=article.title,
                    url=article.url,
                    publisher=article.publisher,
                    published_at=article.published_at,
                ))
                if len(citations) >= limit:
                    return citations
    return citations


def build_research_brief(bundle: EvidenceBundle, scope: SymbolScope) -> ResearchBrief:
    """Schema-validated brief skeleton; narrative sections are filled downstream."""
    return ResearchBrief(
        as_of=bundle.as_of,
        scope=BriefScope(
            symbols=list(scope.holdings_symbols),
            diversifier_tickers=list(scope.diversifier_tickers),
            time_window_days=bundle.window_days,
            max_sources_per_symbol=bundle.per_symbol_limit,
        ),
        citations=collect_citations(bundle),
    )
