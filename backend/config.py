"""Application configuration via environment variables."""

from typing import Dict, List

from pydantic_settings import BaseSettings

# Estimated split of total fees; the event source only reports one fee figure.
DEFAULT_FEE_WEIGHTS: Dict[str, float] = {
    "Trading Fees": 70.0,
    "Network Fees": 20.0,
    "Funding Fees": 8.0,
    "Other Fees": 2.0,
}

DEFAULT_STARTING_CAPITAL = 10_000.0
DEFAULT_PERIODS_PER_YEAR = 252


class Settings(BaseSettings):
    starting_capital: float = DEFAULT_STARTING_CAPITAL
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR  # Sharpe annualisation
    display_timezone: str = "UTC"  # weekday/hour buckets
    fee_weights: Dict[str, float] = DEFAULT_FEE_WEIGHTS
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    model_config = {"env_prefix": "TA_", "env_file": ".env"}


settings = Settings()
