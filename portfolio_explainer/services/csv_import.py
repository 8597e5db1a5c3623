"""CSV parsing for holdings uploads."""

import io
import logging
from typing import Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from ..errors import InputError
from ..models import Holding

logger = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "symbol": ["symbol", "Symbol"],
    "shares": ["shares", "Shares"],
    "price": ["price", "Price"],
    "asset_class": ["assetClass", "AssetClass", "asset_class"],
}


def _resolve_columns(columns: List[str]) -> Dict[str, Optional[str]]:
    resolved = {}
    for field, aliases in COLUMN_ALIASES.items():
        resolved[field] = next((alias for alias in aliases if alias in columns), None)
    return resolved


def _to_number(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        return float("nan")


def parse_holdings_csv(csv_text: str) -> List[Holding]:
    """Parse a header-row CSV into holdings.

    Symbols are trimmed and upper-cased, blank lines skipped; any invalid row
    rejects the whole upload.
    """
    if not csv_text or not isinstance(csv_text, str) or not csv_text.strip():
        raise InputError("csv_text is required")

    try:
        frame = pd.read_csv(
            io.StringIO(csv_text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InputError(f"Could not parse CSV: {e}") from e

    frame.columns = [str(c).strip() for c in frame.columns]
    columns = _resolve_columns(list(frame.columns))

    holdings = []
    for _, row in frame.iterrows():
        def cell(field: str) -> str:
            column = columns[field]
            return str(row[column]).strip() if column is not None else ""

        symbol = cell("symbol").upper()
        shares_raw = cell("shares")
        price_raw = cell("price")
        asset_class = cell("asset_class") or None

        shares = _to_number(shares_raw) if shares_raw else float("nan")
        price = _to_number(price_raw) if price_raw else None

        try:
            holdings.append(Holding(
                symbol=symbol,
                shares=shares,
                price=price,
                asset_class=asset_class,
            ))
        except ValidationError as e:
            raise InputError(f"Invalid CSV row for {symbol}: {e}") from e

    if not holdings:
        raise InputError("CSV produced 0 holdings")

    logger.info(f"Parsed {len(holdings)} holdings from CSV")
    return holdings
