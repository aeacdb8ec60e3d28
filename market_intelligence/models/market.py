"""Pydantic models for the raw market data a compute cycle consumes."""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class OptionType(StrEnum):
    CALL = "call"
    PUT = "put"


class OptionsChainEntry(BaseModel):
    """One contract of an options chain, as fetched for a single cycle."""

    model_config = ConfigDict(frozen=True)

    strike: float
    option_type: OptionType
    volume: int = Field(default=0, ge=0)
    open_interest: int = Field(default=0, ge=0)
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    implied_volatility: float = 0.0   # percent, e.g. 18.5
    expiration: date | None = None


class IntradayBar(BaseModel):
    """One intraday OHLCV bar (typically 5-minute)."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)


class MacroQuote(BaseModel):
    """Latest quote and day change for a cross-asset proxy."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change: float = 0.0
    change_pct: float = 0.0
