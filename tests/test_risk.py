"""Tests for rule-based risk classification."""

import pytest

from portfolio_explainer.errors import ConfigurationError
from portfolio_explainer.models import Holding, RiskLevel
from portfolio_explainer.services.risk import assess_risk, equity_weight
from portfolio_explainer.services.stats import compute_stats


def test_concentrated_stock_portfolio_is_high(concentrated_holdings):
    level, factors = assess_risk(compute_stats(concentrated_holdings))

    assert level == RiskLevel.HIGH
    assert factors == [
        "Top position is more than 20% of the portfolio.",
        "Top 3 positions make up more than 50% of the portfolio.",
        "More than 80% is in stocks (little bonds/cash).",
    ]


def test_balanced_portfolio_is_low(balanced_holdings):
    level, factors = assess_risk(compute_stats(balanced_holdings))

    assert level == RiskLevel.LOW
    assert factors == []


def test_single_factor_is_medium():
    # Eight equal stock positions: nothing concentrated, but all equity
    holdings = [
        Holding(symbol=f"S{i}", shares=1, price=100.0, asset_class="STOCK")
        for i in range(8)
    ]

    level, factors = assess_risk(compute_stats(holdings))

    assert level == RiskLevel.MEDIUM
    assert factors == ["More than 80% is in stocks (little bonds/cash)."]


def test_limits_are_strict():
    # Top position exactly 20%
    holdings = [Holding(symbol="TOP", shares=1, price=20.0, asset_class="BOND")]
    holdings += [
        Holding(symbol=f"B{i}", shares=1, price=10.0, asset_class="BOND")
        for i in range(8)
    ]

    level, factors = assess_risk(compute_stats(holdings))

    assert level == RiskLevel.LOW
    assert factors == []


def test_equity_weight_matches_stock_substring():
    stats = compute_stats([
        Holding(symbol="AAPL", shares=1, price=30.0, asset_class="STOCK"),
        Holding(symbol="VXUS", shares=1, price=30.0, asset_class="INTL_STOCK"),
        Holding(symbol="BND", shares=1, price=40.0, asset_class="BOND"),
    ])

    assert equity_weight(stats) == pytest.approx(0.6)


def test_missing_stats_rejected():
    with pytest.raises(ConfigurationError):
        assess_risk(None)
