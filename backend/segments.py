"""Trade list filtering and per-segment summaries for the dashboard."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from models import (
    Direction,
    DirectionPnl,
    MarketType,
    MarketTypePerformance,
    Trade,
    as_utc,
)


def filter_trades(
    trades: Sequence[Trade],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    symbols: Optional[Iterable[str]] = None,
    market_type: Optional[MarketType] = None,
    direction: Optional[Direction] = None,
) -> List[Trade]:
    """
    Keep trades whose exit falls in [start, end] and that match the optional
    symbol, market type and direction filters.  Naive bounds are read as UTC.
    Input order is preserved.
    """
    start = as_utc(start) if start is not None else None
    end = as_utc(end) if end is not None else None
    wanted = set(symbols) if symbols is not None else None
    kept: List[Trade] = []
    for trade in trades:
        if start is not None and trade.exit_time < start:
            continue
        if end is not None and trade.exit_time > end:
            continue
        if wanted is not None and trade.symbol not in wanted:
            continue
        if market_type is not None and trade.market_type != market_type:
            continue
        if direction is not None and trade.direction != direction:
            continue
        kept.append(trade)
    return kept


def market_type_performance(trades: Sequence[Trade]) -> List[MarketTypePerformance]:
    """P&L, trade count and win rate for every market type, traded or not."""
    results: List[MarketTypePerformance] = []
    for market_type in MarketType:
        subset = [t for t in trades if t.market_type == market_type]
        wins = sum(1 for t in subset if t.pnl > 0)
        results.append(
            MarketTypePerformance(
                market_type=market_type,
                pnl=sum(t.pnl for t in subset),
                trades=len(subset),
                win_rate=wins / len(subset) * 100 if subset else 0.0,
            )
        )
    return results


def direction_pnl(trades: Sequence[Trade]) -> DirectionPnl:
    return DirectionPnl(
        long_pnl=sum(t.pnl for t in trades if t.direction == Direction.LONG),
        short_pnl=sum(t.pnl for t in trades if t.direction == Direction.SHORT),
    )
