"""Alpaca market data integration for live price refresh."""

import asyncio
import logging
from typing import Dict, List, Sequence

from alpaca.data.historical import StockHistoricalDataClient
from alpaca.data.requests import StockLatestQuoteRequest

from ..models import Holding

logger = logging.getLogger(__name__)

CASH_ASSET_CLASS = "CASH"
CASH_SYMBOLS = {"SPAXX"}


class MarketDataService:
    """Service for fetching latest quotes from Alpaca."""

    def __init__(self, api_key: str, secret_key: str):
        """Initialize the Alpaca data client."""
        self.data_client = StockHistoricalDataClient(
            api_key=api_key,
            secret_key=secret_key
        )

    async def get_latest_prices(self, symbols: List[str]) -> Dict[str, float]:
        """Get latest mid prices for symbols."""
        if not symbols:
            return {}
        try:
            loop = asyncio.get_event_loop()
            request = StockLatestQuoteRequest(symbol_or_symbols=symbols)
            quotes = await loop.run_in_executor(
                None, self.data_client.get_stock_latest_quote, request
            )

            prices = {}
            for symbol, quote in quotes.items():
                if quote.bid_price and quote.ask_price:
                    prices[symbol] = float(quote.bid_price + quote.ask_price) / 2
                elif quote.ask_price or quote.bid_price:
                    prices[symbol] = float(quote.ask_price or quote.bid_price)

            return prices
        except Exception as e:
            logger.error(f"Error fetching prices for {symbols}: {e}")
            raise


def is_cash_like(holding: Holding) -> bool:
    return holding.asset_class == CASH_ASSET_CLASS or holding.symbol.upper() in CASH_SYMBOLS


async def refresh_holding_prices(
    holdings: Sequence[Holding],
    market_data: MarketDataService,
) -> List[Holding]:
    """Return holdings with refreshed prices.

    Cash-like positions are left alone; any symbol without a quote (or a
    failed request) keeps its existing price.
    """
    symbols = sorted({h.symbol.upper() for h in holdings if not is_cash_like(h)})
    try:
        prices = await market_data.get_latest_prices(symbols)
    except Exception as e:
        logger.warning(f"Price refresh failed, keeping existing prices: {e}")
        return list(holdings)

    refreshed = []
    for holding in holdings:
        price = None if is_cash_like(holding) else prices.get(holding.symbol.upper())
        if price is None:
            refreshed.append(holding)
        else:
            refreshed.append(holding.model_copy(update={"price": price}))

    logger.info(f"Refreshed prices for {len(prices)}/{len(symbols)} symbols")
    return refreshed
