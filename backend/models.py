"""
Pydantic data models for the trade analytics API.

Every model here is a frozen value type: derived views are rebuilt from the
trade list on each request and never mutated in place.
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_serializer


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


class MarketType(str, Enum):
    SPOT = "spot"
    PERPETUAL = "perpetual"
    OPTIONS = "options"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP_LOSS = "stop-loss"
    TAKE_PROFIT = "take-profit"


class StreakType(str, Enum):
    WIN = "win"
    LOSS = "loss"
    NONE = "none"


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Naive timestamps are taken to be UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class MarketEvent(BaseModel):
    """A single open or close fill, already normalised by the event source."""
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(min_length=1)
    direction: Direction
    market_type: MarketType = MarketType.SPOT
    order_type: OrderType = OrderType.MARKET
    price: float = Field(ge=0, allow_inf_nan=False)
    quantity: float = Field(ge=0, allow_inf_nan=False)
    fee: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    timestamp: UtcDatetime
    is_entry: bool
    pnl_hint: Optional[float] = Field(default=None, allow_inf_nan=False)
    signature: Optional[str] = None


class Trade(BaseModel):
    """A single round-trip trade (entry fill -> exit fill)."""
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    market_type: MarketType
    direction: Direction
    order_type: OrderType = OrderType.MARKET
    entry_price: float
    exit_price: float
    quantity: float
    leverage: Optional[float] = None
    pnl: float
    pnl_percent: float
    fees: float = 0.0
    entry_time: UtcDatetime
    exit_time: UtcDatetime
    duration_minutes: int = Field(ge=0)
    notes: Optional[str] = None
    tx_signature: Optional[str] = None


class PortfolioMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0   # open positions are never priced
    roi: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    scratch_trades: int = 0
    win_rate: float = 0.0         # percent, 0-100
    average_win: float = 0.0
    average_loss: float = 0.0     # magnitude, always >= 0
    largest_win: float = 0.0
    largest_loss: float = 0.0     # most negative pnl, <= 0
    avg_trade_duration: float = 0.0
    sharpe_ratio: float = 0.0     # per-trade returns scaled by sqrt(periods_per_year)
    max_drawdown: float = 0.0     # percent of peak cumulative pnl, >= 0
    expectancy: float = 0.0
    profit_factor: float = 0.0    # +inf when there are wins and no losses
    pnl_skewness: float = 0.0
    long_ratio: float = 50.0
    short_ratio: float = 50.0
    current_streak: int = 0
    current_streak_type: StreakType = StreakType.NONE
    longest_win_streak: int = 0
    longest_loss_streak: int = 0
    total_fees: float = 0.0
    total_volume: float = 0.0

    @field_serializer("profit_factor", when_used="json")
    def _finite_profit_factor(self, value: float) -> Optional[float]:
        return value if math.isfinite(value) else None


class EquityPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    equity: float
    pnl: float
    drawdown: float
    drawdown_percent: float


class VolumeBucket(BaseModel):
    """Entry notional traded on one UTC calendar day, split by market type."""
    model_config = ConfigDict(frozen=True)

    date: str
    volume: Dict[MarketType, float]
    total: float


class TimeBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    pnl: float = 0.0
    trades: int = 0
    win_rate: float = 0.0


class TimePerformance(BaseModel):
    """Weekday (Sun..Sat) and hour-of-day (00:00..23:00) buckets."""
    model_config = ConfigDict(frozen=True)

    daily: List[TimeBucket]
    hourly: List[TimeBucket]


class FeeBreakdown(BaseModel):
    """Estimated share of total fees; weights are fixed, not measured."""
    model_config = ConfigDict(frozen=True)

    type: str
    amount: float
    percentage: float


class MarketTypePerformance(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_type: MarketType
    pnl: float = 0.0
    trades: int = 0
    win_rate: float = 0.0


class DirectionPnl(BaseModel):
    model_config = ConfigDict(frozen=True)

    long_pnl: float = 0.0
    short_pnl: float = 0.0


class UploadResponse(BaseModel):
    trades: List[Trade]
    total_trades: int
    total_events: int
    symbols: List[str]


class MatchRequest(BaseModel):
    events: List[MarketEvent]


class AnalysisRequest(BaseModel):
    trades: List[Trade]
    starting_capital: Optional[float] = Field(default=None, gt=0)
    display_timezone: Optional[str] = None
    start: Optional[UtcDatetime] = None
    end: Optional[UtcDatetime] = None
    symbols: Optional[List[str]] = None
    market_type: Optional[MarketType] = None
    direction: Optional[Direction] = None


class AnalysisResponse(BaseModel):
    trades: List[Trade]
    metrics: PortfolioMetrics
    equity_curve: List[EquityPoint]
    volume: List[VolumeBucket]
    time_performance: TimePerformance
    fee_breakdown: List[FeeBreakdown]
    market_performance: List[MarketTypePerformance]
    direction_pnl: DirectionPnl
