"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating required fields and providing actionable error messages.
"""

import os
from typing import TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator

_T = TypeVar("_T", int, float)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _get_required_env(name: str) -> str:
    """Read a required env var or raise a helpful error."""
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"{name} is required. Please set it in your .env file.")
    if value.startswith("your_") and value.endswith("_here"):
        raise ValueError(f"{name} is required. Please replace the placeholder value in your .env file.")
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


class PriceConfig(BaseModel):
    """Configuration for item prices (price API or a local table)."""

    base_url: str = Field(default="https://prices.runescape.wiki/api/v1/osrs", description="Price API base URL")
    user_agent: str = Field(default="", description="Descriptive User-Agent sent to the price API")
    timeout: float = Field(default=30.0, description="Per-request timeout (seconds)")
    max_attempt: int = Field(default=5, description="Max attempts per request")
    base_delay: float = Field(default=0.5, description="Initial retry delay (seconds)")
    backoff_multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")
    max_delay: float = Field(default=30.0, description="Max total delay before failing (seconds)")

    # When set, prices come from this JSON table and the API is never called.
    table_path: str | None = Field(default=None, description="Path to an offline item table")

    @field_validator("user_agent")
    def validate_user_agent(cls, v: str) -> str:
        """Reject placeholder user agents (the API blocks generic clients)."""
        if v.startswith("your_") and v.endswith("_here"):
            raise ValueError("PRICES_USER_AGENT must describe your client. Please replace the placeholder value.")
        return v


class SinkConfig(BaseModel):
    """Where measurements are persisted."""

    db_path: str = Field(default="measurements.duckdb", description="DuckDB database file")
    table: str = Field(default="measurements", description="Table name")

    @field_validator("table")
    def validate_table(cls, v: str) -> str:
        """Table names are interpolated into SQL; keep them to identifiers."""
        if not v.isidentifier():
            raise ValueError(f"METRICS_DB_TABLE must be a plain identifier. Got: {v!r}")
        return v


class WriterConfig(BaseModel):
    """Batching behavior of the measurement writer."""

    flush_interval_s: float = Field(default=15.0, gt=0, description="Seconds between flushes")
    max_pending: int = Field(default=10000, gt=0, description="Max distinct series pending a flush")
    skip_unchanged: bool = Field(default=True, description="Skip measurements equal to the last written")


class Config(BaseModel):
    """Top-level application configuration."""

    prices: PriceConfig = Field(..., description="Price lookup configuration")
    sink: SinkConfig = Field(default_factory=SinkConfig, description="Sink configuration")
    writer: WriterConfig = Field(default_factory=WriterConfig, description="Writer configuration")
    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}. Got: {v!r}")
        return level


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - `PRICES_USER_AGENT` is only required when prices come from the API
      (i.e. `PRICES_TABLE_PATH` is not set).
    """
    dotenv.load_dotenv()

    table_path = os.getenv("PRICES_TABLE_PATH", "").strip() or None
    user_agent = os.getenv("PRICES_USER_AGENT", "").strip() if table_path else _get_required_env("PRICES_USER_AGENT")

    prices = PriceConfig(
        base_url=os.getenv("PRICES_BASE_URL", "").strip() or "https://prices.runescape.wiki/api/v1/osrs",
        user_agent=user_agent,
        timeout=_get_env_number("PRICES_TIMEOUT", 30.0, float),
        max_attempt=_get_env_number("PRICES_MAX_ATTEMPT", 5, int),
        base_delay=_get_env_number("PRICES_BASE_DELAY", 0.5, float),
        backoff_multiplier=_get_env_number("PRICES_BACKOFF_MULTIPLIER", 2.0, float),
        max_delay=_get_env_number("PRICES_MAX_DELAY", 30.0, float),
        table_path=table_path,
    )
    sink = SinkConfig(
        db_path=os.getenv("METRICS_DB_PATH", "").strip() or "measurements.duckdb",
        table=os.getenv("METRICS_DB_TABLE", "").strip() or "measurements",
    )
    writer = WriterConfig(
        flush_interval_s=_get_env_number("METRICS_FLUSH_INTERVAL", 15.0, float),
        max_pending=_get_env_number("METRICS_MAX_PENDING", 10000, int),
        skip_unchanged=_get_env_bool("METRICS_SKIP_UNCHANGED", True),
    )
    return Config(
        prices=prices,
        sink=sink,
        writer=writer,
        log_level=os.getenv("LOG_LEVEL", "").strip() or "INFO",
    )
