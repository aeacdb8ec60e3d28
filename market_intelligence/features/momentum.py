"""Momentum versus mean-reversion classification from daily closes.

Three votes are taken (RSI side, EMA fast/slow alignment, 5-bar slope).
Mean reversion overrides everything when RSI is at an extreme or price is
outside the ±2σ VWAP band. Momentum needs all three votes to agree.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from market_intelligence.config import MomentumSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.features.technicals import compute_ema, compute_rsi, normalized_slope
from market_intelligence.models.intraday import VWAPPosition
from market_intelligence.models.momentum import EMAAlignment, MomentumRegime, MomentumResult

_EXTENDED = {VWAPPosition.ABOVE_UPPER2, VWAPPosition.BELOW_LOWER2}


def ema_alignment(fast: float, slow: float, tolerance: float) -> EMAAlignment:
    if fast > slow * (1 + tolerance):
        return EMAAlignment.BULLISH
    if fast < slow * (1 - tolerance):
        return EMAAlignment.BEARISH
    return EMAAlignment.NEUTRAL


def min_history(cfg: MomentumSettings) -> int:
    return max(cfg.ema_slow, cfg.rsi_period + 1, cfg.slope_bars) + 4


def compute_momentum(
    closes: Sequence[float],
    cfg: MomentumSettings,
    vwap_position: VWAPPosition | None = None,
    symbol: str = "",
) -> MomentumResult:
    """Classify the momentum regime of a daily close series (oldest first).

    Raises:
        DataUnavailable: if the history is too short for the slow EMA / RSI.
    """
    needed = min_history(cfg)
    if len(closes) < needed:
        raise DataUnavailable("momentum", symbol, f"{len(closes)} closes, need {needed}")

    close = pd.Series(closes, dtype=float)
    rsi = float(compute_rsi(close, cfg.rsi_period).iloc[-1])
    ema_fast = float(compute_ema(close, cfg.ema_fast).iloc[-1])
    ema_slow = float(compute_ema(close, cfg.ema_slow).iloc[-1])
    alignment = ema_alignment(ema_fast, ema_slow, cfg.ema_tolerance)
    slope = normalized_slope(close, cfg.slope_bars)

    bull_votes = sum([
        rsi > cfg.rsi_bull,
        alignment == EMAAlignment.BULLISH,
        slope > cfg.slope_threshold,
    ])
    bear_votes = sum([
        rsi < cfg.rsi_bear,
        alignment == EMAAlignment.BEARISH,
        slope < -cfg.slope_threshold,
    ])
    agreeing = max(bull_votes, bear_votes)
    extended = vwap_position in _EXTENDED

    if rsi > cfg.rsi_overbought or rsi < cfg.rsi_oversold or extended:
        regime = MomentumRegime.MEAN_REVERSION
        confidence = min(cfg.confidence_cap, 50 + abs(rsi - 50))
        if rsi > cfg.rsi_overbought:
            advice = f"RSI {rsi:.1f} overbought: fade the move or tighten stops on longs"
        elif rsi < cfg.rsi_oversold:
            advice = f"RSI {rsi:.1f} oversold: look for reversal setups"
        else:
            advice = "Price extended beyond 2σ of VWAP: mean reversion likely"
    elif bull_votes == 3:
        regime = MomentumRegime.MOMENTUM_BULLISH
        confidence = min(cfg.confidence_cap, 100 * agreeing / 3)
        advice = "Trend following: ride momentum with trailing stops, buy dips to the fast EMA"
    elif bear_votes == 3:
        regime = MomentumRegime.MOMENTUM_BEARISH
        confidence = min(cfg.confidence_cap, 100 * agreeing / 3)
        advice = "Bearish trend: sell rallies into the fast EMA"
    else:
        regime = MomentumRegime.MIXED
        confidence = min(cfg.confidence_cap, 100 * agreeing / 3) / 2
        advice = "Mixed signals: wait for a clearer setup or trade small"

    return MomentumResult(
        regime=regime,
        rsi=rsi,
        ema_fast=ema_fast,
        ema_slow=ema_slow,
        ema_alignment=alignment,
        slope_5d=slope,
        confidence=round(confidence, 1),
        agreeing_signals=agreeing,
        extended_from_vwap=extended,
        trading_advice=advice,
    )
