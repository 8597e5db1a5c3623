"""Snapshot-to-snapshot diffing and the textual digest used in prompts."""

import math
from typing import Dict, List, Optional

from ..errors import ConfigurationError
from ..models import DiffMeta, PortfolioDiff, PortfolioStats, WeightChange

DEFAULT_THRESHOLD = 0.02
DEFAULT_TOP_N = 5
DIGEST_LIMIT = 5

NO_PRIOR_SNAPSHOT = "No prior snapshot to compare."
NO_MATERIAL_CHANGES = "No material changes since the last snapshot."


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def _weight_map(stats: PortfolioStats) -> Dict[str, float]:
    weights: Dict[str, float] = {}
    for row in stats.by_symbol:
        weights[normalize_symbol(row.symbol)] = row.weight
    return weights


def _validate_options(threshold: float, top_n: int) -> None:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ConfigurationError(f"threshold must be a number, got {threshold!r}")
    if not math.isfinite(threshold) or threshold < 0:
        raise ConfigurationError(f"threshold must be finite and >= 0, got {threshold}")
    if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n < 0:
        raise ConfigurationError(f"top_n must be a non-negative integer, got {top_n!r}")


def diff_from_stats(
    prev_stats: Optional[PortfolioStats],
    next_stats: PortfolioStats,
    threshold: float = DEFAULT_THRESHOLD,
    top_n: int = DEFAULT_TOP_N,
) -> PortfolioDiff:
    """Compare two stats snapshots.

    With no previous snapshot the result is empty but still carries ``meta``,
    which marks the "first snapshot" case as distinct from "no changes".
    """
    _validate_options(threshold, top_n)
    meta = DiffMeta(threshold=threshold, top_n=top_n)

    if prev_stats is None:
        return PortfolioDiff(meta=meta)

    prev_weights = _weight_map(prev_stats)
    next_weights = _weight_map(next_stats)

    added = sorted(s for s in next_weights if s not in prev_weights)
    removed = sorted(s for s in prev_weights if s not in next_weights)

    # Union in first-seen order so equal |delta| ranks deterministically
    all_symbols = list(prev_weights) + [s for s in next_weights if s not in prev_weights]

    changes: List[WeightChange] = []
    for symbol in all_symbols:
        prev_weight = prev_weights.get(symbol, 0.0)
        next_weight = next_weights.get(symbol, 0.0)
        delta = next_weight - prev_weight
        if abs(delta) >= threshold:
            changes.append(WeightChange(
                symbol=symbol,
                prev_weight=prev_weight,
                next_weight=next_weight,
                delta=delta,
            ))

    changes.sort(key=lambda c: abs(c.delta), reverse=True)

    return PortfolioDiff(
        added=added,
        removed=removed,
        weight_changes=changes[:top_n],
        meta=meta,
    )


def format_pct(value: float) -> str:
    """Whole-number percentage, rounding halves up."""
    return f"{math.floor(value * 100 + 0.5)}%"


def build_diff_section(diff: Optional[PortfolioDiff]) -> str:
    """Render a diff as the short digest embedded in the explainer prompt."""
    if diff is None:
        return NO_PRIOR_SNAPSHOT

    added = diff.added[:DIGEST_LIMIT]
    removed = diff.removed[:DIGEST_LIMIT]
    changes = diff.weight_changes[:DIGEST_LIMIT]

    lines: List[str] = []
    if added:
        lines.append(f"- Added: {', '.join(added)}")
    if removed:
        lines.append(f"- Removed: {', '.join(removed)}")

    if changes:
        lines.append("- Biggest allocation moves:")
        for change in changes:
            sign = "+" if change.delta >= 0 else ""
            lines.append(
                f"  • {change.symbol}: {format_pct(change.prev_weight)} → "
                f"{format_pct(change.next_weight)} ({sign}{format_pct(change.delta)})"
            )

    if not lines:
        return NO_MATERIAL_CHANGES

    return "\n".join(lines)
