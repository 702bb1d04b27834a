"""
Chart series derived from a list of closed trades.

Each generator is an independent pure reduction over the full trade list.
"""
from __future__ import annotations

from datetime import timezone
from typing import List, Sequence
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from config import DEFAULT_STARTING_CAPITAL
from models import (
    EquityPoint,
    MarketType,
    TimeBucket,
    TimePerformance,
    Trade,
    VolumeBucket,
)

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
HOURS = [f"{h:02d}:00" for h in range(24)]


def _utc_date(trade: Trade) -> str:
    return trade.exit_time.astimezone(timezone.utc).strftime("%Y-%m-%d")


def generate_equity_curve(
    trades: Sequence[Trade],
    starting_capital: float = DEFAULT_STARTING_CAPITAL,
) -> List[EquityPoint]:
    """
    Build the cumulative equity curve, one point per trade in exit-time order.

    Args:
        trades:           Closed trades in any order.
        starting_capital: Equity before the first trade.

    Returns:
        EquityPoints sorted ascending by exit time.
    """
    if not trades:
        return []

    ordered = sorted(trades, key=lambda t: t.exit_time)
    pnl = np.array([t.pnl for t in ordered], dtype=np.float64)

    equity: np.ndarray = starting_capital + np.cumsum(pnl)
    # The running peak includes the starting capital itself.
    peak: np.ndarray = np.maximum(np.maximum.accumulate(equity), starting_capital)
    drawdown: np.ndarray = peak - equity
    drawdown_pct = np.divide(
        drawdown * 100, peak, out=np.zeros_like(drawdown), where=peak > 0
    )

    return [
        EquityPoint(
            date=_utc_date(trade),
            equity=float(equity[i]),
            pnl=float(pnl[i]),
            drawdown=float(drawdown[i]),
            drawdown_percent=float(drawdown_pct[i]),
        )
        for i, trade in enumerate(ordered)
    ]


def generate_volume_buckets(trades: Sequence[Trade]) -> List[VolumeBucket]:
    """
    Sum entry notional per UTC exit date, split by market type.

    Every bucket lists all market types, zero where nothing traded.
    """
    if not trades:
        return []

    frame = pd.DataFrame(
        {
            "date": [_utc_date(t) for t in trades],
            "market_type": [t.market_type.value for t in trades],
            "volume": [t.entry_price * t.quantity for t in trades],
        }
    )
    columns = [m.value for m in MarketType]
    table = (
        frame.pivot_table(
            index="date",
            columns="market_type",
            values="volume",
            aggfunc="sum",
            fill_value=0.0,
        )
        .reindex(columns=columns, fill_value=0.0)
        .sort_index()
    )

    return [
        VolumeBucket(
            date=str(date),
            volume={MarketType(m): float(row[m]) for m in columns},
            total=float(row.sum()),
        )
        for date, row in table.iterrows()
    ]


def _buckets(
    index: np.ndarray, pnl: np.ndarray, wins: np.ndarray, labels: List[str]
) -> List[TimeBucket]:
    size = len(labels)
    pnl_sum = np.bincount(index, weights=pnl, minlength=size)
    counts = np.bincount(index, minlength=size)
    win_counts = np.bincount(index, weights=wins, minlength=size)

    buckets: List[TimeBucket] = []
    for i, label in enumerate(labels):
        n = int(counts[i])
        buckets.append(
            TimeBucket(
                label=label,
                pnl=float(pnl_sum[i]),
                trades=n,
                win_rate=float(win_counts[i] / n * 100) if n else 0.0,
            )
        )
    return buckets


def generate_time_performance(
    trades: Sequence[Trade], tz: str = "UTC"
) -> TimePerformance:
    """
    Group trade outcomes by weekday and by hour of exit, in the viewer's zone.

    Args:
        trades: Closed trades in any order.
        tz:     IANA time zone name the weekday/hour is read in.

    Returns:
        TimePerformance with exactly 7 daily (Sun..Sat) and 24 hourly buckets.

    Raises:
        KeyError: If tz is not a known time zone (ValueError if malformed),
            checked even for an empty list.
    """
    zone = ZoneInfo(tz)
    pnl = np.array([t.pnl for t in trades], dtype=np.float64)
    wins = (pnl > 0).astype(np.float64)

    if trades:
        local = pd.DatetimeIndex(
            pd.to_datetime([t.exit_time for t in trades], utc=True)
        ).tz_convert(zone)
        # pandas counts Monday as 0; the buckets start on Sunday.
        weekday = ((local.dayofweek.to_numpy() + 1) % 7).astype(np.int64)
        hour = local.hour.to_numpy().astype(np.int64)
    else:
        weekday = np.array([], dtype=np.int64)
        hour = np.array([], dtype=np.int64)

    return TimePerformance(
        daily=_buckets(weekday, pnl, wins, WEEKDAYS),
        hourly=_buckets(hour, pnl, wins, HOURS),
    )
