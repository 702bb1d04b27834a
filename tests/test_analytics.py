"""Tests for the portfolio metrics engine."""

import math

import numpy as np
import pytest

from analytics import compute_metrics
from conftest import make_trade
from models import Direction, StreakType


# ---------------------------------------------------------------------------
# 1. Empty and degenerate lists
# ---------------------------------------------------------------------------

class TestEmpty:
    def test_empty_is_neutral(self):
        metrics = compute_metrics([])
        assert metrics.total_trades == 0
        assert metrics.win_rate == 0
        assert metrics.long_ratio == 50
        assert metrics.short_ratio == 50
        assert metrics.current_streak == 0
        assert metrics.current_streak_type == StreakType.NONE
        assert metrics.profit_factor == 0
        assert metrics.sharpe_ratio == 0

    def test_single_scratch_trade(self):
        metrics = compute_metrics([make_trade(0.0, exit_minutes=10)])
        assert metrics.scratch_trades == 1
        assert metrics.current_streak_type == StreakType.NONE
        assert metrics.current_streak == 0
        assert metrics.sharpe_ratio == 0
        assert metrics.max_drawdown == 0

    def test_single_trade_has_no_sharpe(self):
        assert compute_metrics([make_trade(10.0, exit_minutes=10)]).sharpe_ratio == 0


# ---------------------------------------------------------------------------
# 2. Aggregates
# ---------------------------------------------------------------------------

class TestAggregates:
    def test_three_trade_scenario(self, three_trades):
        metrics = compute_metrics(three_trades)
        assert metrics.total_pnl == pytest.approx(20.0)
        assert metrics.realized_pnl == pytest.approx(20.0)
        assert metrics.winning_trades == 1
        assert metrics.losing_trades == 2
        assert metrics.scratch_trades == 0
        assert metrics.win_rate == pytest.approx(100 / 3)
        assert metrics.average_win == pytest.approx(100.0)
        assert metrics.average_loss == pytest.approx(40.0)
        assert metrics.largest_win == pytest.approx(100.0)
        assert metrics.largest_loss == pytest.approx(-50.0)
        assert metrics.longest_win_streak == 1
        assert metrics.longest_loss_streak == 2
        assert metrics.current_streak == 2
        assert metrics.current_streak_type == StreakType.LOSS
        assert metrics.profit_factor == pytest.approx(100.0 / 80.0)
        assert metrics.expectancy == pytest.approx(100 / 3 - (2 / 3) * 40.0)
        assert metrics.roi == pytest.approx(0.2)
        assert metrics.total_pnl_percent == pytest.approx(0.2)

    def test_input_order_does_not_matter(self, three_trades):
        forward = compute_metrics(three_trades)
        backward = compute_metrics(list(reversed(three_trades)))
        assert forward == backward

    def test_counts_add_up(self):
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate([5, -2, 0, 0, 7, -1])]
        metrics = compute_metrics(trades)
        assert (
            metrics.winning_trades + metrics.losing_trades + metrics.scratch_trades
            == metrics.total_trades
        )
        assert metrics.scratch_trades == 2

    def test_fees_volume_and_duration(self):
        trades = [
            make_trade(10.0, exit_minutes=10, entry_price=50.0, quantity=2.0, fees=0.5, duration=20),
            make_trade(-5.0, exit_minutes=20, entry_price=10.0, quantity=3.0, fees=0.25, duration=40),
        ]
        metrics = compute_metrics(trades)
        assert metrics.total_fees == pytest.approx(0.75)
        assert metrics.total_volume == pytest.approx(130.0)
        assert metrics.avg_trade_duration == pytest.approx(30.0)

    def test_long_short_ratio(self):
        trades = [
            make_trade(1.0, exit_minutes=1, direction=Direction.LONG),
            make_trade(1.0, exit_minutes=2, direction=Direction.LONG),
            make_trade(1.0, exit_minutes=3, direction=Direction.LONG),
            make_trade(1.0, exit_minutes=4, direction=Direction.SHORT),
        ]
        metrics = compute_metrics(trades)
        assert metrics.long_ratio == pytest.approx(75.0)
        assert metrics.short_ratio == pytest.approx(25.0)

    def test_roi_uses_starting_capital(self, three_trades):
        assert compute_metrics(three_trades, starting_capital=1_000.0).roi == pytest.approx(2.0)

    def test_profit_factor_without_losses_is_infinite(self):
        metrics = compute_metrics([make_trade(5.0, exit_minutes=1)])
        assert math.isinf(metrics.profit_factor)
        assert metrics.model_dump(mode="json")["profit_factor"] is None

    def test_skewness_needs_three_trades(self, three_trades):
        assert compute_metrics(three_trades[:2]).pnl_skewness == 0.0
        assert compute_metrics(three_trades).pnl_skewness > 0


# ---------------------------------------------------------------------------
# 3. Streaks
# ---------------------------------------------------------------------------

class TestStreaks:
    def test_scratch_breaks_both_streaks(self):
        # chronological: W W 0 W W W L L 0 L
        pnls = [1, 1, 0, 1, 1, 1, -1, -1, 0, -1]
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate(pnls)]
        metrics = compute_metrics(trades)
        assert metrics.longest_win_streak == 3
        assert metrics.longest_loss_streak == 2
        assert metrics.current_streak == 1
        assert metrics.current_streak_type == StreakType.LOSS

    def test_current_win_streak(self):
        pnls = [-3, 2, 4, 6]
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate(pnls)]
        metrics = compute_metrics(trades)
        assert metrics.current_streak == 3
        assert metrics.current_streak_type == StreakType.WIN


# ---------------------------------------------------------------------------
# 4. Risk
# ---------------------------------------------------------------------------

class TestRisk:
    def test_sharpe_matches_sample_std(self):
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate([2.0, -1.0, 3.0, 0.5])]
        returns = np.array([2.0, -1.0, 3.0, 0.5])
        expected = returns.mean() / returns.std(ddof=1) * np.sqrt(252)
        assert compute_metrics(trades).sharpe_ratio == pytest.approx(expected)

    def test_sharpe_zero_when_returns_identical(self):
        trades = [make_trade(1.0, exit_minutes=i) for i in range(4)]
        assert compute_metrics(trades).sharpe_ratio == 0.0

    def test_sharpe_zero_when_fractional_returns_identical(self):
        trades = [make_trade(0.1, exit_minutes=i) for i in range(3)]
        metrics = compute_metrics(trades)
        assert metrics.sharpe_ratio == 0.0
        assert metrics.pnl_skewness == 0.0

    def test_sharpe_periods_per_year(self):
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate([2.0, -1.0, 3.0])]
        daily = compute_metrics(trades).sharpe_ratio
        unscaled = compute_metrics(trades, periods_per_year=1).sharpe_ratio
        assert daily == pytest.approx(unscaled * np.sqrt(252))

    def test_max_drawdown_from_cumulative_peak(self, three_trades):
        # cumulative pnl 100, 50, 20 -> peak 100, trough 20
        assert compute_metrics(three_trades).max_drawdown == pytest.approx(80.0)

    def test_losses_before_any_profit_do_not_count(self):
        trades = [make_trade(-10.0, exit_minutes=1), make_trade(-5.0, exit_minutes=2)]
        assert compute_metrics(trades).max_drawdown == 0.0

    def test_drawdown_bounded_while_cumulative_pnl_positive(self):
        pnls = [50, -10, 30, -60, 5, -4]
        trades = [make_trade(p, exit_minutes=i) for i, p in enumerate(pnls)]
        drawdown = compute_metrics(trades).max_drawdown
        assert 0 <= drawdown <= 100
