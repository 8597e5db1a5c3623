"""
Pytest configuration and fixtures for the portfolio explainer tests.
"""

import asyncio
import pytest
import pytest_asyncio
from types import SimpleNamespace
from typing import AsyncGenerator, Dict, List, Optional, Sequence
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from portfolio_explainer.main import app
from portfolio_explainer.auth import get_current_user_id
from portfolio_explainer.config import Settings
from portfolio_explainer.database import Base, get_db
from portfolio_explainer.dependencies import get_orchestrator
from portfolio_explainer.models import Holding, NewsArticle
from portfolio_explainer.pipeline import ExplainerPipeline
from portfolio_explainer.services.evidence import EvidenceConfig
from portfolio_explainer.services.llm import LLMService
from portfolio_explainer.tasks import PortfolioOrchestrator


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_USER_ID = "user-123"


class FakeCompletions:
    """Records chat completion calls and answers with a canned message."""

    def __init__(self, content: str = "Generated text"):
        self.content = content
        self.calls: List[Dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=f"{self.content} ({kwargs['model']})")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLMClient:
    def __init__(self, content: str = "Generated text"):
        self.completions = FakeCompletions(content)
        self.chat = SimpleNamespace(completions=self.completions)


class FakeNewsProvider:
    """In-memory provider that tracks how many calls run at once."""

    name = "fake"

    def __init__(
        self,
        failing: Sequence[str] = (),
        delays: Optional[Dict[str, float]] = None,
        default_delay: float = 0.0,
        articles_per_symbol: int = 2,
    ):
        self.failing = set(failing)
        self.delays = delays or {}
        self.default_delay = default_delay
        self.articles_per_symbol = articles_per_symbol
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_news(self, symbol: str, days: int, limit: int) -> List[NewsArticle]:
        self.calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(symbol, self.default_delay))
            if symbol in self.failing:
                raise RuntimeError(f"provider unavailable for {symbol}")
            return [
                NewsArticle(
                    title=f"{symbol} headline {i}",
                    url=f"https://news.example.com/{symbol.lower()}/{i}",
                    publisher="Example Wire",
                    published_at="2026-10-01T12:00:00Z",
                )
                for i in range(self.articles_per_symbol)
            ]
        finally:
            self.in_flight -= 1


def make_settings() -> Settings:
    test_settings = Settings()
    test_settings.step_models = {
        "EXPLAINER": "explainer-model",
        "DIVERSIFICATION": "diversification-model",
        "WARNING": "warning-model",
    }
    return test_settings


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def news_provider() -> FakeNewsProvider:
    return FakeNewsProvider()


@pytest.fixture
def pipeline(llm_client, news_provider) -> ExplainerPipeline:
    """Pipeline wired to in-memory collaborators."""
    return ExplainerPipeline(
        llm=LLMService(llm_client, make_settings()),
        news_provider=news_provider,
        evidence_config=EvidenceConfig(timeout_seconds=1.0),
    )


@pytest.fixture
def orchestrator(pipeline) -> PortfolioOrchestrator:
    return PortfolioOrchestrator(pipeline=pipeline)


@pytest.fixture
def concentrated_holdings() -> List[Holding]:
    """All-stock portfolio dominated by one name (HIGH risk)."""
    return [
        Holding(symbol="NVDA", shares=100, price=120.0, asset_class="STOCK"),
        Holding(symbol="AAPL", shares=10, price=200.0, asset_class="STOCK"),
        Holding(symbol="MSFT", shares=2, price=400.0, asset_class="STOCK"),
    ]


@pytest.fixture
def balanced_holdings() -> List[Holding]:
    """Ten equal positions split between stocks and bonds (LOW risk)."""
    holdings = [
        Holding(symbol=f"S{i}", shares=10, price=10.0, asset_class="STOCK")
        for i in range(5)
    ]
    holdings += [
        Holding(symbol=f"B{i}", shares=10, price=10.0, asset_class="BOND")
        for i in range(5)
    ]
    return holdings


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def client(test_session, orchestrator):
    """Test client with database, auth and orchestrator overrides."""

    async def get_test_db():
        yield test_session

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anonymous_client(test_session, orchestrator):
    """Test client that keeps the real bearer-token dependency."""

    async def get_test_db():
        yield test_session

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
