"""Pydantic models for the momentum / mean-reversion classifier."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class MomentumRegime(StrEnum):
    MOMENTUM_BULLISH = "momentum_bullish"
    MOMENTUM_BEARISH = "momentum_bearish"
    MEAN_REVERSION = "mean_reversion"
    MIXED = "mixed"


class EMAAlignment(StrEnum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class MomentumResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    regime: MomentumRegime
    rsi: float
    ema_fast: float
    ema_slow: float
    ema_alignment: EMAAlignment
    slope_5d: float           # regression slope, percent of mean price per bar
    confidence: float         # 0-100
    agreeing_signals: int     # of RSI / EMA / slope votes
    extended_from_vwap: bool
    trading_advice: str
