"""
Reconstruct closed round-trip trades from open/close market events.

Only one open position is tracked per (symbol, direction) key: a second entry
for the same key replaces the first, and an exit pairs with whatever entry is
stored at that moment.  Entries that never see an exit are still-open
positions and are left out; exits with no stored entry are dropped.
"""
from __future__ import annotations

import math
import uuid
from typing import Dict, Iterable, List, Tuple

import numpy as np

from models import Direction, MarketEvent, Trade

PositionKey = Tuple[str, Direction]


def _check_batch(events: List[MarketEvent]) -> None:
    """Reject the whole batch if any numeric field is non-finite or negative."""
    if not events:
        return
    numbers = np.array(
        [[e.price, e.quantity, e.fee] for e in events], dtype=np.float64
    )
    if not np.all(np.isfinite(numbers)):
        raise ValueError("event batch contains non-finite price, quantity or fee")
    if np.any(numbers < 0):
        raise ValueError("event batch contains negative price, quantity or fee")
    hints = [e.pnl_hint for e in events if e.pnl_hint is not None]
    if hints and not np.all(np.isfinite(hints)):
        raise ValueError("event batch contains a non-finite pnl hint")


def _close(entry: MarketEvent, exit_: MarketEvent) -> Trade:
    if exit_.pnl_hint is not None:
        pnl = exit_.pnl_hint
    else:
        sign = 1.0 if entry.direction == Direction.LONG else -1.0
        pnl = (exit_.price - entry.price) * entry.quantity * sign

    # Fees always come off realised P&L, hint or not.
    fees = entry.fee + exit_.fee
    pnl -= fees

    notional = entry.price * entry.quantity
    pnl_percent = (pnl / notional) * 100 if notional > 0 else 0.0

    minutes = (exit_.timestamp - entry.timestamp).total_seconds() / 60
    duration = int(math.floor(minutes + 0.5))  # half-up

    trade_id = exit_.signature or uuid.uuid4().hex

    return Trade(
        id=trade_id,
        symbol=exit_.symbol,
        market_type=exit_.market_type,
        direction=entry.direction,
        order_type=entry.order_type,
        entry_price=entry.price,
        exit_price=exit_.price,
        quantity=entry.quantity,
        pnl=pnl,
        pnl_percent=pnl_percent,
        fees=fees,
        entry_time=entry.timestamp,
        exit_time=exit_.timestamp,
        duration_minutes=duration,
        tx_signature=exit_.signature,
    )


def match_trades(events: Iterable[MarketEvent]) -> List[Trade]:
    """
    Pair entry events with the next exit for the same (symbol, direction).

    Args:
        events: Market events in any order.

    Returns:
        Closed trades, most recent exit first.

    Raises:
        ValueError: If any event carries a non-finite or negative number.
    """
    # sorted() is stable, so simultaneous events keep their input order.
    ordered = sorted(events, key=lambda e: e.timestamp)
    _check_batch(ordered)

    open_positions: Dict[PositionKey, MarketEvent] = {}
    trades: List[Trade] = []

    for event in ordered:
        key = (event.symbol, event.direction)
        if event.is_entry:
            open_positions[key] = event
            continue

        entry = open_positions.pop(key, None)
        if entry is None:
            continue
        trades.append(_close(entry, event))

    trades.sort(key=lambda t: t.exit_time, reverse=True)
    return trades
