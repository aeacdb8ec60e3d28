"""VIX level bands, trailing percentile and term-structure classification.

Pure functions: accept raw values and config, return model objects.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.config import VIXSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.volatility import (
    TermSource,
    TermStructure,
    VIXRegime,
    VIXRegimeResult,
)

_IMPLICATIONS: dict[VIXRegime, str] = {
    VIXRegime.COMPLACENT: "Low volatility: market may be underpricing risk, hedges are cheap.",
    VIXRegime.NORMAL: "Normal conditions: standard risk parameters apply.",
    VIXRegime.ELEVATED: "Elevated risk: tighten stops and scale into positions.",
    VIXRegime.PANIC: "Extreme volatility: cut size, avoid overnight holds.",
}

_TERM_NOTES: dict[TermStructure, str] = {
    TermStructure.CONTANGO: " Term structure in contango, trend following works.",
    TermStructure.BACKWARDATION: " Term structure in backwardation, fear is acute, expect mean reversion.",
    TermStructure.FLAT: "",
}


def classify_vix(level: float, cfg: VIXSettings) -> VIXRegime:
    if level < cfg.complacent_below:
        return VIXRegime.COMPLACENT
    if level < cfg.normal_below:
        return VIXRegime.NORMAL
    if level < cfg.elevated_below:
        return VIXRegime.ELEVATED
    return VIXRegime.PANIC


def percentile_rank(values: Sequence[float], current: float) -> float:
    """Percent of ``values`` at or below ``current`` (0-100)."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 50.0
    return float((arr <= current).mean() * 100)


def classify_term(spread: float, band: float) -> TermStructure:
    if spread > band:
        return TermStructure.CONTANGO
    if spread < -band:
        return TermStructure.BACKWARDATION
    return TermStructure.FLAT


def compute_vix_regime(
    history: Sequence[float],
    term_level: float | None,
    cfg: VIXSettings,
) -> VIXRegimeResult:
    """Classify the latest VIX close.

    Args:
        history: Daily VIX closes, oldest first; the last value is current.
        term_level: Longer-dated index level (e.g. VIX3M), or None.

    Raises:
        DataUnavailable: if there is no VIX history.
    """
    closes = [float(v) for v in history if v is not None and v > 0]
    if not closes:
        raise DataUnavailable("vix_regime", cfg.symbol, "no VIX history")

    vix = closes[-1]
    avg = float(np.mean(closes[-cfg.average_window:]))
    window = closes[-cfg.percentile_window:]

    if term_level is not None and term_level > 0:
        spread = term_level - vix
        source = TermSource.VIX3M
        term = classify_term(spread, cfg.term_flat_band)
    else:
        spread = avg - vix
        source = TermSource.AVERAGE
        term = classify_term(spread, cfg.average_flat_band)

    regime = classify_vix(vix, cfg)
    return VIXRegimeResult(
        vix=vix,
        vix_20d_avg=avg,
        regime=regime,
        percentile=percentile_rank(window, vix),
        term_structure=term,
        term_spread=spread,
        term_source=source,
        trading_implication=_IMPLICATIONS[regime] + _TERM_NOTES[term],
    )
