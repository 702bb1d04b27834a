"""Shared factories for building events and trades in tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from models import Direction, MarketEvent, MarketType, Trade

T0 = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)  # a Monday


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_event(
    minutes: float,
    is_entry: bool,
    symbol: str = "SOL-PERP",
    direction: Direction = Direction.LONG,
    price: float = 100.0,
    quantity: float = 1.0,
    **kwargs: Any,
) -> MarketEvent:
    return MarketEvent(
        symbol=symbol,
        direction=direction,
        price=price,
        quantity=quantity,
        timestamp=at(minutes),
        is_entry=is_entry,
        **kwargs,
    )


def make_trade(
    pnl: float,
    exit_minutes: float,
    direction: Direction = Direction.LONG,
    market_type: MarketType = MarketType.PERPETUAL,
    entry_price: float = 100.0,
    quantity: float = 1.0,
    fees: float = 0.0,
    duration: int = 30,
    symbol: str = "SOL-PERP",
) -> Trade:
    exit_time = at(exit_minutes)
    notional = entry_price * quantity
    return Trade(
        id=f"tx-{exit_minutes}",
        symbol=symbol,
        market_type=market_type,
        direction=direction,
        entry_price=entry_price,
        exit_price=entry_price,
        quantity=quantity,
        pnl=pnl,
        pnl_percent=pnl / notional * 100 if notional else 0.0,
        fees=fees,
        entry_time=exit_time - timedelta(minutes=duration),
        exit_time=exit_time,
        duration_minutes=duration,
    )


@pytest.fixture()
def three_trades() -> list:
    """+100, -50, -30 closing in that order, returned most recent first."""
    return [
        make_trade(-30.0, exit_minutes=180),
        make_trade(-50.0, exit_minutes=120),
        make_trade(100.0, exit_minutes=60),
    ]
