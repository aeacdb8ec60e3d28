"""Session VWAP with volume-weighted standard deviation bands."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.config import IntradaySettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.intraday import VWAPBandResult, VWAPPosition
from market_intelligence.models.market import IntradayBar


def classify_position(
    price: float, vwap: float, std_dev: float, at_vwap_sigma: float,
) -> VWAPPosition:
    """Place ``price`` relative to VWAP and its ±1σ/±2σ bands."""
    if abs(price - vwap) <= at_vwap_sigma * std_dev:
        return VWAPPosition.AT_VWAP
    if price > vwap:
        if price > vwap + 2 * std_dev:
            return VWAPPosition.ABOVE_UPPER2
        if price > vwap + std_dev:
            return VWAPPosition.BETWEEN_UPPER1_UPPER2
        return VWAPPosition.BETWEEN_VWAP_UPPER1
    if price < vwap - 2 * std_dev:
        return VWAPPosition.BELOW_LOWER2
    if price < vwap - std_dev:
        return VWAPPosition.BETWEEN_LOWER2_LOWER1
    return VWAPPosition.BETWEEN_LOWER1_VWAP


def compute_vwap_bands(
    bars: Sequence[IntradayBar],
    cfg: IntradaySettings,
    current_price: float | None = None,
    symbol: str = "",
) -> VWAPBandResult:
    """VWAP of the typical price (H+L+C)/3 and its population σ.

    Bars with zero volume are ignored. ``current_price`` defaults to the last
    bar's close.

    Raises:
        DataUnavailable: if fewer than ``cfg.min_bars`` bars carry volume.
    """
    traded = [b for b in bars if b.volume > 0]
    if len(traded) < cfg.min_bars:
        raise DataUnavailable("vwap", symbol, f"{len(traded)} bars with volume, need {cfg.min_bars}")

    tp = np.array([(b.high + b.low + b.close) / 3 for b in traded], dtype=float)
    vol = np.array([b.volume for b in traded], dtype=float)

    vwap = float(np.average(tp, weights=vol))
    std_dev = float(np.sqrt(np.average((tp - vwap) ** 2, weights=vol)))
    price = current_price if current_price is not None else traded[-1].close

    return VWAPBandResult(
        vwap=vwap,
        std_dev=std_dev,
        upper1=vwap + std_dev,
        lower1=vwap - std_dev,
        upper2=vwap + 2 * std_dev,
        lower2=vwap - 2 * std_dev,
        current_price=price,
        distance_pct=(price - vwap) / vwap * 100,
        position=classify_position(price, vwap, std_dev, cfg.at_vwap_sigma),
        bar_count=len(traded),
    )
