"""Database models and Pydantic schemas."""

from sqlalchemy import Column, String, Float, Integer, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator
from enum import Enum

from .database import Base


# SQLAlchemy Models
class User(Base):
    """Application user, keyed by the identity provider's subject id."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, default=datetime.now)

    snapshots = relationship("PortfolioSnapshot", back_populates="user")


class PortfolioSnapshot(Base):
    """Point-in-time set of holdings for a user."""
    __tablename__ = "portfolio_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    source = Column(String(50), nullable=False, default="csv")
    created_at = Column(DateTime, default=datetime.now, index=True)

    user = relationship("User", back_populates="snapshots")
    holdings = relationship(
        "SnapshotHolding",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SnapshotHolding.id",
    )


class SnapshotHolding(Base):
    """One position inside a snapshot."""
    __tablename__ = "snapshot_holdings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(Integer, ForeignKey("portfolio_snapshots.id"), nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    shares = Column(Float, nullable=False)
    price = Column(Float)
    asset_class = Column(String(50))

    snapshot = relationship("PortfolioSnapshot", back_populates="holdings")


class ResearchReport(Base):
    """Persisted output of a research run."""
    __tablename__ = "research_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    snapshot_id = Column(Integer, ForeignKey("portfolio_snapshots.id"), nullable=False)
    run_type = Column(String(20), nullable=False)  # weekly, manual, monthly
    input_json = Column(JSON)
    output_md = Column(Text, nullable=False)
    status = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.now)


# Pydantic Schemas
class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RunType(str, Enum):
    WEEKLY = "WEEKLY"
    MANUAL = "MANUAL"
    MONTHLY = "MONTHLY"


class ReportStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class DiversifierCategory(str, Enum):
    DEFENSIVE_SECTOR = "DEFENSIVE_SECTOR"
    DIVIDEND_QUALITY = "DIVIDEND_QUALITY"
    BROAD_US_EQUITY = "BROAD_US_EQUITY"
    INTERNATIONAL_EQUITY = "INTERNATIONAL_EQUITY"
    BONDS_SHORT_DURATION = "BONDS_SHORT_DURATION"
    BONDS_CORE = "BONDS_CORE"
    GOLD_COMMODITIES = "GOLD_COMMODITIES"
    LOW_VOLATILITY = "LOW_VOLATILITY"
    REAL_ESTATE = "REAL_ESTATE"
    CASH_EQUIVALENT = "CASH_EQUIVALENT"


class Sentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"
    MIXED = "MIXED"


class Confidence(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Holding(BaseModel):
    """A single position. Symbols are trimmed; comparisons upper-case them."""
    symbol: str = Field(min_length=1)
    shares: float = Field(allow_inf_nan=False)
    price: Optional[float] = Field(default=None, allow_inf_nan=False)
    asset_class: Optional[str] = None

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("symbol", mode="before")
    @classmethod
    def _strip_symbol(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class SymbolStat(BaseModel):
    symbol: str
    value: float
    weight: float
    asset_class: Optional[str] = None

    class Config:
        frozen = True


class AssetClassStat(BaseModel):
    asset_class: str
    value: float
    weight: float

    class Config:
        frozen = True


class PortfolioStats(BaseModel):
    """Derived statistics for one set of holdings."""
    total_value: float
    by_symbol: List[SymbolStat]
    by_asset_class: List[AssetClassStat]
    top_symbols: List[str]
    concentration_top1: float
    concentration_top3: float

    class Config:
        frozen = True


class WeightChange(BaseModel):
    symbol: str
    prev_weight: float
    next_weight: float
    delta: float

    class Config:
        frozen = True


class DiffMeta(BaseModel):
    threshold: float
    top_n: int

    class Config:
        frozen = True


class PortfolioDiff(BaseModel):
    """Ranked, bounded differences between two stats snapshots."""
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    weight_changes: List[WeightChange] = Field(default_factory=list)
    meta: DiffMeta

    class Config:
        frozen = True


class DiversifierCandidate(BaseModel):
    ticker: str
    category: DiversifierCategory
    rationale: str

    class Config:
        frozen = True


class SymbolScope(BaseModel):
    holdings_symbols: List[str] = Field(default_factory=list, max_length=5)
    diversifier_tickers: List[str] = Field(default_factory=list, max_length=3)

    class Config:
        frozen = True


class NewsArticle(BaseModel):
    """News item as returned by a provider; same shape as a citation."""
    title: str
    url: str
    publisher: Optional[str] = None
    published_at: Optional[str] = None

    class Config:
        frozen = True


class FetchError(BaseModel):
    symbol: str
    message: str

    class Config:
        frozen = True


class EvidenceMeta(BaseModel):
    provider: str
    fetched_symbols: List[str]
    total_articles: int
    errors: List[FetchError] = Field(default_factory=list)

    class Config:
        frozen = True


class EvidenceBundle(BaseModel):
    """Raw per-symbol news grouped into holdings and diversifiers."""
    as_of: str
    window_days: int
    per_symbol_limit: int
    holdings: Dict[str, List[NewsArticle]] = Field(default_factory=dict)
    diversifiers: Dict[str, List[NewsArticle]] = Field(default_factory=dict)
    meta: EvidenceMeta

    class Config:
        frozen = True


CITATION_URL_PATTERN = r"^https?://\S+$"


class Citation(BaseModel):
    title: str = Field(min_length=1)
    url: str = Field(pattern=CITATION_URL_PATTERN)
    publisher: Optional[str] = None
    published_at: Optional[str] = None


class BriefItem(BaseModel):
    symbol: str = Field(min_length=1)
    bullets: List[str] = Field(min_length=1, max_length=5)
    sentiment: Sentiment
    confidence: Confidence
    citations: List[Citation] = Field(default_factory=list, max_length=8)


class BriefScope(BaseModel):
    symbols: List[str] = Field(min_length=1, max_length=20)
    diversifier_tickers: List[str] = Field(default_factory=list, max_length=20)
    time_window_days: int = Field(ge=1, le=365)
    max_sources_per_symbol: int = Field(ge=1, le=10)


class ResearchBrief(BaseModel):
    """Compact, bounded research summary handed to narrative generation."""
    as_of: str = Field(min_length=1)
    scope: BriefScope
    key_themes: List[str] = Field(default_factory=list, max_length=10)
    symbol_briefs: List[BriefItem] = Field(default_factory=list, max_length=20)
    holdings_briefs: List[BriefItem] = Field(default_factory=list, max_length=10)
    diversifier_briefs: List[BriefItem] = Field(default_factory=list, max_length=10)
    notable_risks: List[str] = Field(default_factory=list, max_length=10)
    notable_opportunities: List[str] = Field(default_factory=list, max_length=10)
    citations: List[Citation] = Field(default_factory=list, max_length=50)


class ExplainState(BaseModel):
    """Pipeline state; every step returns a patch merged into a new copy."""
    holdings: List[Holding]
    use_live_prices: bool = False
    stats: Optional[PortfolioStats] = None
    risk_level: Optional[RiskLevel] = None
    risk_factors: List[str] = Field(default_factory=list)
    diversifier_candidates: List[DiversifierCandidate] = Field(default_factory=list)
    scope: Optional[SymbolScope] = None
    evidence_bundle: Optional[EvidenceBundle] = None
    research_brief: Optional[ResearchBrief] = None
    diversification_ideas: Optional[str] = None
    warning: Optional[str] = None
    explanation: Optional[str] = None
    portfolio_diff: Optional[PortfolioDiff] = None

    class Config:
        frozen = True


class ImportRequest(BaseModel):
    """Request schema for CSV imports."""
    csv_text: str
    source: str = "csv"


class ImportResponse(BaseModel):
    ok: bool = True
    snapshot_id: int
    created_at: datetime


class AnalyzeRequest(BaseModel):
    use_live_prices: bool = False


class ResearchRequest(BaseModel):
    use_live_prices: bool = False
    run_type: RunType = RunType.MANUAL


class SnapshotSummary(BaseModel):
    """Latest snapshot with its computed statistics."""
    snapshot_id: int
    created_at: datetime
    source: str
    holdings: List[Holding]
    stats: PortfolioStats


class DiffResponse(BaseModel):
    snapshot_id: int
    previous_snapshot_id: Optional[int] = None
    diff: Optional[PortfolioDiff] = None
    digest: str


class ResearchReportSchema(BaseModel):
    id: int
    snapshot_id: int
    run_type: str
    status: str
    output_md: str
    created_at: datetime

    class Config:
        from_attributes = True
