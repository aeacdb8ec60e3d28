"""25-delta implied volatility skew from an options chain.

Pure functions, no data fetching.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.config import SkewBucket, SkewSettings
from market_intelligence.data.exceptions import ComputationDegraded, DataUnavailable
from market_intelligence.features.chain import atm_iv, front_expiry
from market_intelligence.models.market import OptionsChainEntry, OptionType
from market_intelligence.models.options import IVSkewResult


def _delta_curve(
    chain: Sequence[OptionsChainEntry], option_type: OptionType,
) -> tuple[np.ndarray, np.ndarray]:
    """(|delta|, iv) points for one side, sorted by |delta|, duplicates averaged."""
    by_delta: dict[float, list[float]] = {}
    for e in chain:
        if e.option_type != option_type or e.implied_volatility <= 0:
            continue
        if option_type == OptionType.CALL and not 0 < e.delta < 1:
            continue
        if option_type == OptionType.PUT and not -1 < e.delta < 0:
            continue
        by_delta.setdefault(abs(e.delta), []).append(e.implied_volatility)
    xs = np.array(sorted(by_delta), dtype=float)
    ys = np.array([np.mean(by_delta[x]) for x in xs], dtype=float)
    return xs, ys


def interpolate_iv_at_delta(
    abs_deltas: np.ndarray, ivs: np.ndarray, target: float,
) -> tuple[float, bool]:
    """IV at ``target`` |delta| and whether the chain brackets it.

    Linear interpolation between the two points bracketing the target;
    otherwise the IV of the nearest available delta.
    """
    if abs_deltas.size == 0:
        raise ValueError("no delta points")
    if abs_deltas[0] <= target <= abs_deltas[-1]:
        return float(np.interp(target, abs_deltas, ivs)), True
    idx = int(np.argmin(np.abs(abs_deltas - target)))
    return float(ivs[idx]), False


def classify_skew(skew: float, buckets: Sequence[SkewBucket]) -> SkewBucket:
    """First bucket whose ``above`` cutoff the skew exceeds (table is descending)."""
    for bucket in buckets:
        if bucket.above is None or skew > bucket.above:
            return bucket
    return buckets[-1]


def compute_iv_skew(
    chain: Sequence[OptionsChainEntry],
    spot: float,
    cfg: SkewSettings,
    symbol: str = "",
) -> IVSkewResult:
    """Skew between the 25-delta put and call IVs of the front expiry.

    Raises:
        DataUnavailable: if the chain carries no implied volatility.
        ComputationDegraded: if either side has no usable delta.
    """
    front = front_expiry(chain)
    atm = atm_iv(front, spot)
    if atm is None:
        raise DataUnavailable("iv_skew", symbol, "no implied volatility in chain")
    atm_strike, atm_vol = atm

    put_x, put_y = _delta_curve(front, OptionType.PUT)
    call_x, call_y = _delta_curve(front, OptionType.CALL)
    if put_x.size == 0 or call_x.size == 0:
        raise ComputationDegraded("iv_skew", symbol, "chain lacks put or call deltas")

    put_iv, put_ok = interpolate_iv_at_delta(put_x, put_y, cfg.target_delta)
    call_iv, call_ok = interpolate_iv_at_delta(call_x, call_y, cfg.target_delta)

    skew = put_iv - call_iv
    bucket = classify_skew(skew, cfg.buckets)

    return IVSkewResult(
        atm_strike=atm_strike,
        atm_iv=atm_vol,
        put_25d_iv=put_iv,
        call_25d_iv=call_iv,
        skew=skew,
        skew_ratio=put_iv / call_iv if call_iv > 0 else None,
        bucket=bucket.label,
        interpretation=bucket.interpretation,
        put_bracketed=put_ok,
        call_bracketed=call_ok,
    )
