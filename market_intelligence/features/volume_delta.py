"""Buy/sell aggressor volume estimated from bars with a tick-rule heuristic.

A bar's volume counts as buying when its close is above the prior bar's
midpoint and as selling when below. Ties, and the first bar, fall back to
close versus open; a doji contributes nothing.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.config import IntradaySettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.intraday import DeltaDirection, VolumeDeltaResult
from market_intelligence.models.market import IntradayBar


def signed_volumes(bars: Sequence[IntradayBar]) -> list[float]:
    """Per-bar signed volume (+ buying, - selling)."""
    out: list[float] = []
    prev: IntradayBar | None = None
    for bar in bars:
        sign = 0.0
        if prev is not None:
            mid = (prev.high + prev.low) / 2
            sign = float(np.sign(bar.close - mid))
        if sign == 0.0:
            sign = float(np.sign(bar.close - bar.open))
        out.append(sign * bar.volume)
        prev = bar
    return out


def compute_volume_delta(
    bars: Sequence[IntradayBar],
    cfg: IntradaySettings,
    symbol: str = "",
) -> VolumeDeltaResult:
    """Cumulative signed delta with a trailing-window divergence check.

    Raises:
        DataUnavailable: if fewer than ``cfg.min_bars`` bars carry volume.
    """
    traded = [b for b in bars if b.volume > 0]
    if len(traded) < cfg.min_bars:
        raise DataUnavailable("volume_delta", symbol, f"{len(traded)} bars with volume, need {cfg.min_bars}")

    signed = signed_volumes(traded)
    cumulative = float(sum(signed))
    total_volume = float(sum(b.volume for b in traded))

    if abs(cumulative) <= cfg.neutral_fraction * total_volume:
        direction = DeltaDirection.NEUTRAL
    elif cumulative > 0:
        direction = DeltaDirection.BUYING
    else:
        direction = DeltaDirection.SELLING

    window = min(cfg.divergence_bars, len(traded))
    price_change = traded[-1].close - traded[-window].close
    window_delta = sum(signed[-window:])
    divergence = bool(
        price_change != 0 and window_delta != 0
        and np.sign(price_change) != np.sign(window_delta)
    )

    return VolumeDeltaResult(
        cumulative_delta=cumulative,
        direction=direction,
        divergence=divergence,
        bars_analyzed=len(traded),
        divergence_window=window,
    )
