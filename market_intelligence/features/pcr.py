"""Put/call ratio aggregation from an options chain.

Pure functions, no data fetching.
"""

from __future__ import annotations

from collections.abc import Sequence

from market_intelligence.config import PCRSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.market import OptionsChainEntry, OptionType
from market_intelligence.models.options import PCRByStrike, PCRResult
from market_intelligence.models.score import SignalDirection


def classify_pcr(pcr: float | None, cfg: PCRSettings) -> SignalDirection:
    """Map a put/call ratio onto the configured sentiment bands."""
    if pcr is None:
        return SignalDirection.NEUTRAL
    if pcr < cfg.bullish_below:
        return SignalDirection.BULLISH
    if pcr >= cfg.bearish_at_or_above:
        return SignalDirection.BEARISH
    return SignalDirection.NEUTRAL


def _ratio(numerator: int, denominator: int) -> float | None:
    if denominator <= 0:
        return None
    return numerator / denominator


def compute_pcr(
    chain: Sequence[OptionsChainEntry],
    cfg: PCRSettings,
    symbol: str = "",
) -> PCRResult:
    """Aggregate call/put volume and open interest per strike and overall.

    Strikes whose combined volume is under ``cfg.min_strike_volume`` are left
    out of ``by_strike`` but still count toward the totals.

    Raises:
        DataUnavailable: if the chain is empty.
    """
    if not chain:
        raise DataUnavailable("pcr", symbol, "empty options chain")

    per_strike: dict[float, list[int]] = {}
    for entry in chain:
        row = per_strike.setdefault(entry.strike, [0, 0, 0, 0])
        if entry.option_type == OptionType.CALL:
            row[0] += entry.volume
            row[2] += entry.open_interest
        else:
            row[1] += entry.volume
            row[3] += entry.open_interest

    by_strike: list[PCRByStrike] = []
    for strike in sorted(per_strike):
        call_vol, put_vol, call_oi, put_oi = per_strike[strike]
        if call_vol + put_vol < cfg.min_strike_volume:
            continue
        by_strike.append(PCRByStrike(
            strike=strike,
            call_volume=call_vol,
            put_volume=put_vol,
            call_oi=call_oi,
            put_oi=put_oi,
            pcr=_ratio(put_vol, call_vol),
        ))

    total_call_vol = sum(r[0] for r in per_strike.values())
    total_put_vol = sum(r[1] for r in per_strike.values())
    total_call_oi = sum(r[2] for r in per_strike.values())
    total_put_oi = sum(r[3] for r in per_strike.values())

    overall = _ratio(total_put_vol, total_call_vol)
    oi_weighted = _ratio(total_put_oi, total_call_oi)

    reasons = []
    if overall is None:
        reasons.append("zero_call_volume")
    if oi_weighted is None:
        reasons.append("zero_call_open_interest")

    return PCRResult(
        by_strike=tuple(by_strike),
        overall_pcr=overall,
        oi_weighted_pcr=oi_weighted,
        total_call_volume=total_call_vol,
        total_put_volume=total_put_vol,
        total_call_oi=total_call_oi,
        total_put_oi=total_put_oi,
        interpretation=classify_pcr(overall, cfg),
        reason=",".join(reasons) or None,
    )
