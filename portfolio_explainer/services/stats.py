"""Portfolio statistics: value, weights and concentration."""

import logging
from typing import Dict, List, Sequence

from ..errors import EmptyPortfolioError
from ..models import AssetClassStat, Holding, PortfolioStats, SymbolStat

logger = logging.getLogger(__name__)

UNKNOWN_ASSET_CLASS = "UNKNOWN"
TOP_SYMBOLS_COUNT = 5


def holding_value(holding: Holding) -> float:
    """Market value of a holding; a missing price counts as zero."""
    return holding.shares * (holding.price if holding.price is not None else 0.0)


def compute_stats(holdings: Sequence[Holding]) -> PortfolioStats:
    """Compute portfolio statistics for a non-empty list of holdings.

    Weights are value / total value. When the total is zero or negative every
    weight (and both concentration figures) is reported as 0.0 instead of a
    non-finite number. Sorting is stable, so equal weights keep input order.
    """
    if not holdings:
        raise EmptyPortfolioError()

    values = [holding_value(h) for h in holdings]
    total_value = sum(values)
    has_value = total_value > 0

    if not has_value:
        logger.warning(
            f"Portfolio total value is {total_value}; reporting all weights as 0"
        )

    def weight_of(value: float) -> float:
        return value / total_value if has_value else 0.0

    by_symbol = [
        SymbolStat(
            symbol=h.symbol,
            value=value,
            weight=weight_of(value),
            asset_class=h.asset_class,
        )
        for h, value in zip(holdings, values)
    ]
    by_symbol.sort(key=lambda s: s.weight, reverse=True)

    # Bucket by exact asset class string; dict keeps first-seen order for ties
    class_values: Dict[str, float] = {}
    for h, value in zip(holdings, values):
        asset_class = h.asset_class if h.asset_class is not None else UNKNOWN_ASSET_CLASS
        class_values[asset_class] = class_values.get(asset_class, 0.0) + value

    by_asset_class = [
        AssetClassStat(asset_class=asset_class, value=value, weight=weight_of(value))
        for asset_class, value in class_values.items()
    ]
    by_asset_class.sort(key=lambda a: a.weight, reverse=True)

    concentration_top1 = by_symbol[0].weight if by_symbol else 0.0
    concentration_top3 = sum(s.weight for s in by_symbol[:3])
    top_symbols: List[str] = [s.symbol for s in by_symbol[:TOP_SYMBOLS_COUNT]]

    return PortfolioStats(
        total_value=total_value,
        by_symbol=by_symbol,
        by_asset_class=by_asset_class,
        top_symbols=top_symbols,
        concentration_top1=concentration_top1,
        concentration_top3=concentration_top3,
    )
