"""Rule-based risk classification from portfolio statistics."""

import logging
from typing import List, Optional, Tuple

from ..errors import ConfigurationError
from ..models import PortfolioStats, RiskLevel

logger = logging.getLogger(__name__)

TOP1_LIMIT = 0.20
TOP3_LIMIT = 0.50
EQUITY_LIMIT = 0.80


def equity_weight(stats: PortfolioStats) -> float:
    """Combined weight of asset classes whose name contains ``STOCK``."""
    return sum(ac.weight for ac in stats.by_asset_class if "STOCK" in ac.asset_class)


def assess_risk(stats: Optional[PortfolioStats]) -> Tuple[RiskLevel, List[str]]:
    """Return the risk level and the human-readable factors that triggered it."""
    if stats is None:
        raise ConfigurationError("Stats missing; compute stats before assessing risk")

    factors: List[str] = []
    if stats.concentration_top1 > TOP1_LIMIT:
        factors.append("Top position is more than 20% of the portfolio.")
    if stats.concentration_top3 > TOP3_LIMIT:
        factors.append("Top 3 positions make up more than 50% of the portfolio.")
    if equity_weight(stats) > EQUITY_LIMIT:
        factors.append("More than 80% is in stocks (little bonds/cash).")

    if len(factors) >= 2:
        level = RiskLevel.HIGH
    elif len(factors) == 1:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    logger.info(f"Risk assessed as {level.value} with {len(factors)} factors")
    return level, factors
