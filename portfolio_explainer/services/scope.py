"""Deterministic research scope: top holdings plus diversifier candidates."""

from typing import Dict, List, Optional, Sequence, Set

from ..errors import ConfigurationError
from ..models import (
    DiversifierCandidate, DiversifierCategory, Holding, PortfolioStats,
    RiskLevel, SymbolScope,
)
from .diff import normalize_symbol

MAX_HOLDINGS_SYMBOLS = 5
MAX_DIVERSIFIER_TICKERS = 3

# Category -> (ticker menu, rationale). Menu order matters for tie-breaks.
DIVERSIFIER_MENU: Dict[DiversifierCategory, tuple] = {
    DiversifierCategory.DEFENSIVE_SECTOR: (
        ["PG", "JNJ", "NEE"],
        "Defensive sectors tend to exhibit lower volatility during market downturns.",
    ),
    DiversifierCategory.BONDS_SHORT_DURATION: (
        ["SGOV", "BIL"],
        "Short-duration bonds offer stability with minimal interest rate sensitivity.",
    ),
    DiversifierCategory.BONDS_CORE: (
        ["BND", "AGG"],
        "Core bond funds provide diversified fixed-income exposure across maturities.",
    ),
    DiversifierCategory.LOW_VOLATILITY: (
        ["USMV", "SPLV"],
        "Low-volatility equity strategies target stocks with historically lower price swings.",
    ),
    DiversifierCategory.BROAD_US_EQUITY: (
        ["VTI", "SCHB", "ITOT"],
        "Broad US market ETFs offer diversified exposure across all market capitalizations.",
    ),
    DiversifierCategory.INTERNATIONAL_EQUITY: (
        ["VEA", "EFA"],
        "International equity funds provide geographic diversification beyond US markets.",
    ),
    DiversifierCategory.GOLD_COMMODITIES: (
        ["GLD", "IAU"],
        "Gold and commodity exposure can serve as a hedge during inflationary periods.",
    ),
}

RISK_CATEGORIES: Dict[RiskLevel, List[DiversifierCategory]] = {
    RiskLevel.HIGH: [
        DiversifierCategory.DEFENSIVE_SECTOR,
        DiversifierCategory.BONDS_SHORT_DURATION,
        DiversifierCategory.LOW_VOLATILITY,
    ],
    RiskLevel.MEDIUM: [
        DiversifierCategory.DEFENSIVE_SECTOR,
        DiversifierCategory.INTERNATIONAL_EQUITY,
        DiversifierCategory.BONDS_CORE,
    ],
    RiskLevel.LOW: [
        DiversifierCategory.BROAD_US_EQUITY,
        DiversifierCategory.INTERNATIONAL_EQUITY,
        DiversifierCategory.GOLD_COMMODITIES,
    ],
}


def categories_for_risk(risk_level: Optional[RiskLevel]) -> List[DiversifierCategory]:
    """Three categories to suggest; an unknown level is treated as MEDIUM."""
    return list(RISK_CATEGORIES.get(risk_level, RISK_CATEGORIES[RiskLevel.MEDIUM]))


def pick_first_not_held(tickers: Sequence[str], held: Set[str]) -> str:
    """First ticker not already held, or the first ticker when all are held."""
    for ticker in tickers:
        if normalize_symbol(ticker) not in held:
            return ticker
    return tickers[0]


def select_diversifier_candidates(
    holdings: Sequence[Holding],
    risk_level: Optional[RiskLevel],
) -> List[DiversifierCandidate]:
    """Exactly three rule-based diversifier suggestions for the risk tier."""
    held = {normalize_symbol(h.symbol) for h in holdings}

    candidates = []
    for category in categories_for_risk(risk_level):
        if category not in DIVERSIFIER_MENU:
            raise ConfigurationError(f"No menu found for category: {category.value}")
        tickers, rationale = DIVERSIFIER_MENU[category]
        candidates.append(DiversifierCandidate(
            ticker=pick_first_not_held(tickers, held),
            category=category,
            rationale=rationale,
        ))
    return candidates


def compute_scope(
    stats: Optional[PortfolioStats],
    candidates: Sequence[DiversifierCandidate],
) -> SymbolScope:
    """Top five holdings and first three diversifiers, normalized."""
    if stats is None:
        raise ConfigurationError("Stats missing; cannot derive research scope")

    holdings_symbols = [
        s for s in (normalize_symbol(sym) for sym in stats.top_symbols[:MAX_HOLDINGS_SYMBOLS])
        if s
    ]
    diversifier_tickers = [
        t for t in (normalize_symbol(c.ticker) for c in candidates[:MAX_DIVERSIFIER_TICKERS])
        if t
    ]
    return SymbolScope(
        holdings_symbols=holdings_symbols,
        diversifier_tickers=diversifier_tickers,
    )
