"""
Trade Analytics API, FastAPI backend.

Endpoints
---------
GET  /health          Health check.
POST /upload          Parse a CSV of open/close events → round-trip Trade list.
POST /match           Same as /upload, for events already sent as JSON.
POST /analyze         Portfolio metrics and chart series for a trade list.
"""
from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Optional

import pandas as pd
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from analytics import compute_metrics
from config import settings
from fees import summarize_fees
from matching import match_trades
from models import (
    AnalysisRequest,
    AnalysisResponse,
    MarketEvent,
    MatchRequest,
    Trade,
    UploadResponse,
)
from segments import direction_pnl, filter_trades, market_type_performance
from timeseries import (
    generate_equity_curve,
    generate_time_performance,
    generate_volume_buckets,
)

logging.basicConfig(level=settings.log_level, format="%(levelname)s  %(name)s  %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Trade Analytics API",
    description="Rebuilds round-trip trades from on-chain fills and summarises portfolio performance.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Column normalisation ──────────────────────────────────────────────────────────
# Maps canonical column names to the aliases event exports commonly use.
_COLUMN_ALIASES: Dict[str, List[str]] = {
    "time":        ["time", "timestamp", "date", "datetime", "block time", "blocktime"],
    "symbol":      ["symbol", "market", "instrument", "ticker", "asset"],
    "direction":   ["direction", "side", "position side"],
    "action":      ["action", "event", "type", "is_entry", "is entry"],
    "market_type": ["market type", "market_type", "markettype", "product"],
    "order_type":  ["order type", "order_type", "ordertype"],
    "price":       ["price", "fill price", "execution price", "avg price"],
    "quantity":    ["quantity", "qty", "size", "amount"],
    "fee":         ["fee", "fees", "commission"],
    "pnl":         ["pnl", "realized pnl", "realized_pnl", "realised pnl"],
    "signature":   ["signature", "tx", "txid", "tx signature", "transaction", "hash"],
}

_ENTRY_WORDS = {"open", "entry", "opened", "true", "1", "yes"}
_EXIT_WORDS = {"close", "exit", "closed", "false", "0", "no"}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename DataFrame columns to canonical lowercase names via alias lookup."""
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    rename_map: Dict[str, str] = {}
    # Aliases are tried in listed order, so an exact canonical name wins.
    for canonical, aliases in _COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in df.columns and alias not in rename_map:
                rename_map[alias] = canonical
                break
    return df.rename(columns=rename_map)


def _parse_action(value: Any) -> bool:
    word = str(value).strip().lower()
    if word in _ENTRY_WORDS:
        return True
    if word in _EXIT_WORDS:
        return False
    raise ValueError(f"Unrecognised action {value!r}; expected open/close.")


def _optional(value: Any) -> Optional[Any]:
    return None if pd.isna(value) else value


def _parse_events(df: pd.DataFrame) -> List[MarketEvent]:
    """
    Turn one CSV row per fill into MarketEvents.

    Args:
        df: Normalised DataFrame (column names already canonical).

    Returns:
        MarketEvents in file order.

    Raises:
        ValueError: If required columns are missing or a row is invalid.
    """
    required = {"time", "symbol", "direction", "action", "price", "quantity"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"CSV is missing required columns after normalisation: {sorted(missing)}. "
            f"Found columns: {list(df.columns)}"
        )

    df = df.copy()
    df["time"] = pd.to_datetime(df["time"], utc=True)

    events: List[MarketEvent] = []
    for _, row in df.iterrows():
        fields: Dict[str, Any] = {
            "symbol": str(row["symbol"]).strip(),
            "direction": str(row["direction"]).strip().lower(),
            "is_entry": _parse_action(row["action"]),
            "price": float(row["price"]),
            "quantity": float(row["quantity"]),
            "timestamp": row["time"].to_pydatetime(),
        }
        if "market_type" in df.columns and _optional(row["market_type"]) is not None:
            fields["market_type"] = str(row["market_type"]).strip().lower()
        if "order_type" in df.columns and _optional(row["order_type"]) is not None:
            fields["order_type"] = str(row["order_type"]).strip().lower()
        if "fee" in df.columns and _optional(row["fee"]) is not None:
            fields["fee"] = float(row["fee"])
        if "pnl" in df.columns and _optional(row["pnl"]) is not None:
            fields["pnl_hint"] = float(row["pnl"])
        if "signature" in df.columns and _optional(row["signature"]) is not None:
            fields["signature"] = str(row["signature"]).strip()
        events.append(MarketEvent(**fields))

    return events


def _match_response(events: List[MarketEvent]) -> UploadResponse:
    try:
        trades = match_trades(events)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    symbols = sorted({t.symbol for t in trades})
    logger.info(
        "Matched %d events into %d round-trip trades across symbols: %s",
        len(events),
        len(trades),
        symbols,
    )
    return UploadResponse(
        trades=trades,
        total_trades=len(trades),
        total_events=len(events),
        symbols=symbols,
    )


# ── Routes ─────────────────────────────────────────────────────────────────────────

@app.get("/health")
def health() -> Dict[str, str]:
    """Simple liveness probe."""
    return {"status": "ok"}


@app.post("/upload", response_model=UploadResponse)
async def upload_csv(file: UploadFile = File(...)) -> UploadResponse:
    """
    Accept a CSV of open/close events and return the matched round-trip trades.

    The endpoint is tolerant of different column naming conventions.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are accepted.")

    raw = await file.read()

    try:
        df = pd.read_csv(io.StringIO(raw.decode("utf-8")))
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise HTTPException(status_code=400, detail=f"Failed to parse CSV: {exc}")

    df = _normalize_columns(df)
    logger.info("CSV parsed, columns detected: %s", df.columns.tolist())

    try:
        events = _parse_events(df)
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return _match_response(events)


@app.post("/match", response_model=UploadResponse)
def match(request: MatchRequest) -> UploadResponse:
    """Match JSON events into round-trip trades."""
    return _match_response(request.events)


def build_analysis(
    trades: List[Trade],
    starting_capital: float,
    periods_per_year: int,
    display_timezone: str,
    fee_weights: Dict[str, float],
) -> AnalysisResponse:
    """Recompute every derived view from scratch for one trade list."""
    ordered = sorted(trades, key=lambda t: t.exit_time, reverse=True)
    return AnalysisResponse(
        trades=ordered,
        metrics=compute_metrics(ordered, starting_capital, periods_per_year),
        equity_curve=generate_equity_curve(ordered, starting_capital),
        volume=generate_volume_buckets(ordered),
        time_performance=generate_time_performance(ordered, display_timezone),
        fee_breakdown=summarize_fees(ordered, fee_weights),
        market_performance=market_type_performance(ordered),
        direction_pnl=direction_pnl(ordered),
    )


@app.post("/analyze", response_model=AnalysisResponse)
def analyze(request: AnalysisRequest) -> AnalysisResponse:
    """
    Compute portfolio metrics and chart series on a (filtered) trade list.

    Returns the summary metrics, cumulative equity curve, daily volume, weekday
    and hourly performance, estimated fee split and per-segment P&L.
    """
    trades = filter_trades(
        request.trades,
        start=request.start,
        end=request.end,
        symbols=request.symbols,
        market_type=request.market_type,
        direction=request.direction,
    )
    starting_capital = request.starting_capital or settings.starting_capital
    display_timezone = request.display_timezone or settings.display_timezone

    logger.info(
        "Analysing %d of %d trades, starting_capital=%.0f, tz=%s",
        len(trades),
        len(request.trades),
        starting_capital,
        display_timezone,
    )

    try:
        response = build_analysis(
            trades,
            starting_capital=starting_capital,
            periods_per_year=settings.periods_per_year,
            display_timezone=display_timezone,
            fee_weights=settings.fee_weights,
        )
    except (ValueError, KeyError) as exc:
        # Unknown time zone names surface here.
        raise HTTPException(status_code=422, detail=str(exc))

    logger.info("Analysis complete.")
    return response
