"""
Portfolio metrics computation for a list of closed trades.

The whole snapshot is recomputed from the trade list on every call; nothing
is carried over between calls.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
from scipy import stats

from config import DEFAULT_PERIODS_PER_YEAR, DEFAULT_STARTING_CAPITAL
from models import Direction, PortfolioMetrics, StreakType, Trade


def _sign(pnl: float) -> int:
    # Scratch trades are exactly zero; no epsilon band.
    if pnl > 0:
        return 1
    if pnl < 0:
        return -1
    return 0


def _streaks(trades: Sequence[Trade]) -> Tuple[int, StreakType, int, int]:
    """
    Walk trades most-recent-first and return
    (current_streak, current_streak_type, longest_win_streak, longest_loss_streak).
    """
    longest_win = longest_loss = 0
    run_win = run_loss = 0
    for trade in trades:
        sign = _sign(trade.pnl)
        if sign > 0:
            run_win += 1
            run_loss = 0
        elif sign < 0:
            run_loss += 1
            run_win = 0
        else:
            run_win = run_loss = 0
        longest_win = max(longest_win, run_win)
        longest_loss = max(longest_loss, run_loss)

    first = _sign(trades[0].pnl)
    if first == 0:
        return 0, StreakType.NONE, longest_win, longest_loss

    current = 0
    for trade in trades:
        if _sign(trade.pnl) != first:
            break
        current += 1
    streak_type = StreakType.WIN if first > 0 else StreakType.LOSS
    return current, streak_type, longest_win, longest_loss


def _max_drawdown(chronological_pnl: np.ndarray) -> float:
    """Largest peak-to-trough fall of cumulative pnl, as a percent of the peak."""
    cum_pnl = np.cumsum(chronological_pnl)
    # The running peak starts at zero, so losses before any profit are ignored.
    peak = np.maximum(np.maximum.accumulate(cum_pnl), 0.0)
    drawdown = np.divide(
        (peak - cum_pnl) * 100,
        peak,
        out=np.zeros_like(cum_pnl),
        where=peak > 0,
    )
    return float(np.max(drawdown))


# Relative spread below which a series of equal floats is treated as constant;
# equal fractional values can otherwise give a std of ~1e-17 instead of 0.
_FLAT_TOLERANCE = 1e-12


def _is_flat(std: float, mean: float) -> bool:
    return std <= _FLAT_TOLERANCE * max(1.0, abs(mean))


def _sharpe(pnl_percent: np.ndarray, periods_per_year: int) -> float:
    """
    Mean over sample standard deviation of per-trade returns, scaled by
    sqrt(periods_per_year).  Each trade counts as one period regardless of how
    far apart trades are, so this is a heuristic rather than a time-weighted
    Sharpe ratio.

    A standard deviation no larger than _FLAT_TOLERANCE (1e-12) times the mean
    magnitude, or times 1.0 for means below 1, counts as zero and gives 0.
    """
    if len(pnl_percent) < 2:
        return 0.0
    std = float(np.std(pnl_percent, ddof=1))
    mean = float(np.mean(pnl_percent))
    if _is_flat(std, mean):
        return 0.0
    return mean / std * float(np.sqrt(periods_per_year))


def _skewness(pnl: np.ndarray) -> float:
    if len(pnl) < 3:
        return 0.0
    # Constant series have no defined skew.
    if _is_flat(float(np.std(pnl)), float(np.mean(pnl))):
        return 0.0
    skew = float(stats.skew(pnl))
    return skew if np.isfinite(skew) else 0.0


def compute_metrics(
    trades: Sequence[Trade],
    starting_capital: float = DEFAULT_STARTING_CAPITAL,
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR,
) -> PortfolioMetrics:
    """
    Compute the portfolio summary from closed trades.

    Args:
        trades:           Closed trades in any order.
        starting_capital: Capital the ROI is measured against.
        periods_per_year: Annualisation factor for the Sharpe ratio.

    Returns:
        A PortfolioMetrics snapshot.  An empty trade list gives the neutral
        snapshot (zeros, 50/50 long/short, no streak).
    """
    n = len(trades)
    if n == 0:
        return PortfolioMetrics()

    # Canonical order is most recent exit first; sorted() keeps ties stable.
    recent_first: List[Trade] = sorted(trades, key=lambda t: t.exit_time, reverse=True)
    chronological: List[Trade] = sorted(trades, key=lambda t: t.exit_time)

    pnl = np.array([t.pnl for t in recent_first], dtype=np.float64)
    wins = pnl[pnl > 0]
    losses = pnl[pnl < 0]
    n_wins = int(len(wins))
    n_losses = int(len(losses))

    total_pnl = float(np.sum(pnl))
    total_fees = float(sum(t.fees for t in recent_first))
    total_volume = float(sum(t.entry_price * t.quantity for t in recent_first))

    win_rate = n_wins / n * 100
    average_win = float(np.mean(wins)) if n_wins else 0.0
    average_loss = float(np.mean(np.abs(losses))) if n_losses else 0.0

    gross_profit = float(np.sum(wins))
    gross_loss = float(np.abs(np.sum(losses)))
    if gross_loss > 0:
        profit_factor = gross_profit / gross_loss
    else:
        profit_factor = float("inf") if gross_profit > 0 else 0.0

    expectancy = (win_rate / 100) * average_win - (1 - win_rate / 100) * average_loss

    current, streak_type, longest_win, longest_loss = _streaks(recent_first)

    n_long = sum(1 for t in trades if t.direction == Direction.LONG)
    n_short = sum(1 for t in trades if t.direction == Direction.SHORT)

    pnl_percent = np.array([t.pnl_percent for t in recent_first], dtype=np.float64)
    roi = total_pnl / starting_capital * 100

    return PortfolioMetrics(
        total_pnl=total_pnl,
        total_pnl_percent=roi,
        realized_pnl=total_pnl,
        unrealized_pnl=0.0,
        roi=roi,
        total_trades=n,
        winning_trades=n_wins,
        losing_trades=n_losses,
        scratch_trades=n - n_wins - n_losses,
        win_rate=win_rate,
        average_win=average_win,
        average_loss=average_loss,
        largest_win=float(np.max(wins)) if n_wins else 0.0,
        largest_loss=float(np.min(losses)) if n_losses else 0.0,
        avg_trade_duration=float(np.mean([t.duration_minutes for t in recent_first])),
        sharpe_ratio=_sharpe(pnl_percent, periods_per_year),
        max_drawdown=_max_drawdown(np.array([t.pnl for t in chronological], dtype=np.float64)),
        expectancy=expectancy,
        profit_factor=profit_factor,
        pnl_skewness=_skewness(pnl),
        long_ratio=n_long / n * 100,
        short_ratio=n_short / n * 100,
        current_streak=current,
        current_streak_type=streak_type,
        longest_win_streak=longest_win,
        longest_loss_streak=longest_loss,
        total_fees=total_fees,
        total_volume=total_volume,
    )
