"""Dealer gamma exposure (GEX) by strike, flip point and key levels.

Sign convention: call open interest contributes positive (dealer long gamma),
put open interest contributes negative. Per strike::

    net_gex = sum(OI * gamma * spot**2 * move_fraction)

Pure functions, no data fetching.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.config import GEXSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.market import OptionsChainEntry, OptionType
from market_intelligence.models.options import (
    GEXByStrike,
    GEXLevel,
    GEXLevelType,
    GEXResult,
)


def compute_gex_by_strike(
    chain: Sequence[OptionsChainEntry],
    spot: float,
    move_fraction: float = 0.01,
) -> list[GEXByStrike]:
    """Net gamma exposure per strike, sorted by strike ascending."""
    spot_sq = spot * spot
    acc: dict[float, list[float]] = {}
    for entry in chain:
        row = acc.setdefault(entry.strike, [0, 0, 0.0, 0.0])
        exposure = entry.open_interest * entry.gamma * spot_sq * move_fraction
        if entry.option_type == OptionType.CALL:
            row[0] += entry.open_interest
            row[2] += exposure
        else:
            row[1] += entry.open_interest
            row[3] -= exposure

    return [
        GEXByStrike(
            strike=strike,
            call_oi=int(acc[strike][0]),
            put_oi=int(acc[strike][1]),
            call_gex=acc[strike][2],
            put_gex=acc[strike][3],
            net_gex=acc[strike][2] + acc[strike][3],
        )
        for strike in sorted(acc)
    ]


def find_flip_point(strikes: Sequence[float], net_gex: Sequence[float]) -> float | None:
    """Strike where the cumulative net-GEX curve crosses zero.

    Strikes must be ascending. The crossing is linearly interpolated between
    the last non-zero cumulative point and the first point of opposite sign,
    so the result lies strictly between those two strikes. Returns None when
    there are fewer than two strikes or the curve never changes sign.
    """
    if len(strikes) < 2:
        return None

    cumulative = np.cumsum(np.asarray(net_gex, dtype=float))
    prev_strike: float | None = None
    prev_cum = 0.0
    for strike, cum in zip(strikes, cumulative):
        if cum == 0.0:
            continue
        if prev_strike is not None and np.sign(cum) != np.sign(prev_cum):
            frac = -prev_cum / (cum - prev_cum)
            return float(prev_strike + (strike - prev_strike) * frac)
        prev_strike, prev_cum = strike, float(cum)
    return None


def _tag_level(row: GEXByStrike, spot: float, strong: float) -> GEXLevelType:
    if row.net_gex > 0 and row.net_gex >= strong and row.strike < spot:
        return GEXLevelType.SUPPORT
    if row.net_gex < 0 and -row.net_gex >= strong and row.strike > spot:
        return GEXLevelType.RESISTANCE
    return GEXLevelType.MAGNET


def compute_gex(
    chain: Sequence[OptionsChainEntry],
    spot: float,
    cfg: GEXSettings,
    symbol: str = "",
) -> GEXResult:
    """Build a GEXResult from a chain snapshot.

    Raises:
        DataUnavailable: on an empty chain or non-positive spot.
    """
    if not chain:
        raise DataUnavailable("gex", symbol, "empty options chain")
    if spot <= 0:
        raise DataUnavailable("gex", symbol, f"invalid spot price {spot}")

    rows = compute_gex_by_strike(chain, spot, cfg.move_fraction)
    strikes = [r.strike for r in rows]
    nets = [r.net_gex for r in rows]

    total = float(sum(nets))
    flip = find_flip_point(strikes, nets)

    max_row = max(rows, key=lambda r: abs(r.net_gex))
    max_abs = abs(max_row.net_gex)
    strong = max_abs * cfg.strong_fraction

    ranked = sorted(rows, key=lambda r: abs(r.net_gex), reverse=True)[: cfg.top_levels]
    top_levels = [
        GEXLevel(strike=r.strike, net_gex=r.net_gex, type=_tag_level(r, spot, strong))
        for r in ranked
        if r.net_gex != 0
    ]

    return GEXResult(
        spot_price=spot,
        by_strike=tuple(rows),
        total_net_gex=total,
        flip_point=flip,
        max_gamma_strike=max_row.strike,
        top_levels=tuple(top_levels),
    )
