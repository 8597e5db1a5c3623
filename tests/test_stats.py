"""Tests for portfolio statistics."""

import pytest

from portfolio_explainer.errors import EmptyPortfolioError, InputError
from portfolio_explainer.models import Holding
from portfolio_explainer.services.stats import compute_stats, holding_value


def test_weights_and_concentration():
    holdings = [
        Holding(symbol="AAPL", shares=10, price=100.0, asset_class="STOCK"),
        Holding(symbol="BND", shares=20, price=50.0, asset_class="BOND"),
        Holding(symbol="MSFT", shares=5, price=400.0, asset_class="STOCK"),
        Holding(symbol="CASH", shares=1000, price=1.0, asset_class="CASH"),
    ]

    stats = compute_stats(holdings)

    assert stats.total_value == pytest.approx(5000.0)
    assert [s.symbol for s in stats.by_symbol] == ["MSFT", "AAPL", "BND", "CASH"]
    assert stats.by_symbol[0].weight == pytest.approx(0.4)
    assert stats.concentration_top1 == pytest.approx(0.4)
    assert stats.concentration_top3 == pytest.approx(0.8)
    assert stats.top_symbols == ["MSFT", "AAPL", "BND", "CASH"]
    assert sum(s.weight for s in stats.by_symbol) == pytest.approx(1.0)


def test_two_equal_holdings():
    stats = compute_stats([
        Holding(symbol="AAPL", shares=10, price=100.0),
        Holding(symbol="MSFT", shares=5, price=200.0),
    ])

    assert stats.total_value == pytest.approx(2000.0)
    assert [s.weight for s in stats.by_symbol] == [pytest.approx(0.5), pytest.approx(0.5)]
    assert stats.concentration_top1 == pytest.approx(0.5)
    assert stats.concentration_top3 == pytest.approx(1.0)


def test_asset_class_buckets():
    holdings = [
        Holding(symbol="AAPL", shares=10, price=100.0, asset_class="STOCK"),
        Holding(symbol="VXUS", shares=10, price=50.0),
        Holding(symbol="MSFT", shares=10, price=100.0, asset_class="STOCK"),
    ]

    stats = compute_stats(holdings)

    by_class = {a.asset_class: a for a in stats.by_asset_class}
    assert set(by_class) == {"STOCK", "UNKNOWN"}
    assert by_class["STOCK"].value == pytest.approx(2000.0)
    assert by_class["STOCK"].weight == pytest.approx(0.8)
    assert stats.by_asset_class[0].asset_class == "STOCK"
    assert sum(a.weight for a in stats.by_asset_class) == pytest.approx(
        sum(s.weight for s in stats.by_symbol)
    )


def test_missing_price_counts_as_zero():
    holding = Holding(symbol="XYZ", shares=10)
    assert holding_value(holding) == 0.0

    stats = compute_stats([
        holding,
        Holding(symbol="AAPL", shares=1, price=100.0),
    ])
    assert stats.by_symbol[0].symbol == "AAPL"
    assert stats.by_symbol[0].weight == pytest.approx(1.0)
    assert stats.by_symbol[1].weight == 0.0


def test_equal_weights_keep_input_order():
    holdings = [
        Holding(symbol=symbol, shares=1, price=10.0)
        for symbol in ["C", "A", "B", "E", "D", "F"]
    ]

    stats = compute_stats(holdings)

    assert [s.symbol for s in stats.by_symbol] == ["C", "A", "B", "E", "D", "F"]
    assert stats.top_symbols == ["C", "A", "B", "E", "D"]


def test_zero_total_value_reports_zero_weights():
    holdings = [
        Holding(symbol="AAA", shares=10, price=0.0),
        Holding(symbol="BBB", shares=0, price=25.0),
    ]

    stats = compute_stats(holdings)

    assert stats.total_value == 0.0
    assert all(s.weight == 0.0 for s in stats.by_symbol)
    assert all(a.weight == 0.0 for a in stats.by_asset_class)
    assert sum(a.weight for a in stats.by_asset_class) == sum(s.weight for s in stats.by_symbol)
    assert stats.concentration_top1 == 0.0
    assert stats.concentration_top3 == 0.0


def test_negative_total_value_reports_zero_weights():
    stats = compute_stats([
        Holding(symbol="SHORT", shares=-10, price=50.0),
        Holding(symbol="LONG", shares=1, price=50.0),
    ])

    assert stats.total_value == pytest.approx(-450.0)
    assert all(s.weight == 0.0 for s in stats.by_symbol)


def test_empty_holdings_rejected():
    with pytest.raises(EmptyPortfolioError):
        compute_stats([])

    # Empty portfolios are an input problem
    with pytest.raises(InputError):
        compute_stats([])


def test_holding_rejects_non_finite_shares():
    with pytest.raises(ValueError):
        Holding(symbol="AAPL", shares=float("nan"), price=1.0)
    with pytest.raises(ValueError):
        Holding(symbol="AAPL", shares=1, price=float("inf"))


def test_holding_symbol_is_trimmed():
    assert Holding(symbol="  aapl ", shares=1).symbol == "aapl"
    with pytest.raises(ValueError):
        Holding(symbol="   ", shares=1)
