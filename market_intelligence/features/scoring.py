"""Unified directional score from the per-signal outcomes.

Each available signal is mapped by an adapter to a contribution in [-1, 1]
plus a short tag. Configured weights of unavailable signals are dropped and
the rest renormalized to sum to 1, so a partial snapshot is not pulled
toward zero just because data is missing::

    score = clamp(100 * sum(w_i / sum(w_avail) * c_i), -100, 100)

All functions are stateless: no network, no side effects.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

import numpy as np

from market_intelligence.config import Settings
from market_intelligence.models.intraday import DeltaDirection, VolumeDeltaResult, VWAPBandResult
from market_intelligence.models.macro import DollarPressure, MacroResult
from market_intelligence.models.momentum import MomentumRegime, MomentumResult
from market_intelligence.models.options import (
    ExpectedMoveResult,
    GEXResult,
    IVSkewResult,
    PCRResult,
)
from market_intelligence.models.outcome import (
    SIGNAL_LABELS,
    Available,
    SignalName,
    SignalOutcome,
)
from market_intelligence.models.score import (
    SignalContribution,
    SignalDirection,
    UnifiedScoreResult,
)
from market_intelligence.models.volatility import VIXRegimeResult

Adapter = Callable[[object, Settings], tuple[float, str]]


def _clip(value: float) -> float:
    return float(np.clip(value, -1.0, 1.0))


def _words(tag: str) -> str:
    return tag.replace("_", " ")


# ---------------------------------------------------------------------------
# Per-signal adapters
# ---------------------------------------------------------------------------

def pcr_contribution(r: PCRResult, s: Settings) -> tuple[float, str]:
    cfg = s.pcr
    pcr = r.overall_pcr
    if pcr is None:
        return 0.0, "PCR undefined"
    if r.interpretation == SignalDirection.BULLISH:
        depth = (cfg.bullish_below - pcr) / cfg.bullish_below
        c = 0.5 + 0.5 * float(np.clip(depth, 0.0, 1.0))
    elif r.interpretation == SignalDirection.BEARISH:
        depth = (pcr - cfg.bearish_at_or_above) / cfg.bearish_at_or_above
        c = -(0.5 + 0.5 * float(np.clip(depth, 0.0, 1.0)))
    else:
        c = 0.0
    return _clip(c), f"PCR {pcr:.2f}, {r.interpretation}"


def gex_contribution(r: GEXResult, s: Settings) -> tuple[float, str]:
    c = 0.7 * float(np.sign(r.total_net_gex))
    tag = "positive gamma" if r.total_net_gex > 0 else "negative gamma"
    if r.flip_point is not None:
        above = r.spot_price > r.flip_point
        c += 0.3 if above else -0.3
        tag += f", spot {'above' if above else 'below'} flip {r.flip_point:.2f}"
    return _clip(c), tag


def iv_skew_contribution(r: IVSkewResult, s: Settings) -> tuple[float, str]:
    bias = next((b.bias for b in s.skew.buckets if b.label == r.bucket), 0.0)
    return _clip(bias), f"{_words(r.bucket)} {r.skew:+.1f} pts"


def vix_contribution(r: VIXRegimeResult, s: Settings) -> tuple[float, str]:
    c = s.vix.regime_bias.get(r.regime.value, 0.0) + s.vix.term_bias.get(r.term_structure.value, 0.0)
    return _clip(c), f"VIX {r.vix:.1f} {r.regime}, {r.term_structure}"


def macro_contribution(r: MacroResult, s: Settings) -> tuple[float, str]:
    c = s.macro.regime_bias.get(r.regime.value, 0.0) + s.macro.dollar_bias.get(r.dollar_pressure.value, 0.0)
    tag = _words(r.regime)
    if r.dollar_pressure != DollarPressure.NEUTRAL:
        tag += f", dollar {r.dollar_pressure}"
    return _clip(c), tag


def vwap_contribution(r: VWAPBandResult, s: Settings) -> tuple[float, str]:
    c = s.intraday.position_bias.get(r.position.value, 0.0)
    return _clip(c), f"{_words(r.position)} ({r.distance_pct:+.2f}%)"


def volume_delta_contribution(r: VolumeDeltaResult, s: Settings) -> tuple[float, str]:
    cfg = s.intraday
    if r.direction == DeltaDirection.BUYING:
        c = cfg.delta_bias
    elif r.direction == DeltaDirection.SELLING:
        c = -cfg.delta_bias
    else:
        c = 0.0
    tag = f"{r.direction} pressure"
    if r.divergence:
        c *= cfg.divergence_damping
        tag += ", diverging from price"
    return _clip(c), tag


def expected_move_contribution(r: ExpectedMoveResult, s: Settings) -> tuple[float, str]:
    return 0.0, f"±{r.daily_move_pct:.2f}% daily"


def momentum_contribution(r: MomentumResult, s: Settings) -> tuple[float, str]:
    cfg = s.momentum
    if r.regime == MomentumRegime.MOMENTUM_BULLISH:
        c = 0.7
    elif r.regime == MomentumRegime.MOMENTUM_BEARISH:
        c = -0.7
    elif r.regime == MomentumRegime.MEAN_REVERSION and r.rsi > cfg.rsi_overbought:
        c = -0.5
    elif r.regime == MomentumRegime.MEAN_REVERSION and r.rsi < cfg.rsi_oversold:
        c = 0.5
    else:
        c = 0.0
    return _clip(c), f"{_words(r.regime)}, RSI {r.rsi:.0f}"


ADAPTERS: dict[SignalName, Adapter] = {
    SignalName.PCR: pcr_contribution,
    SignalName.GEX: gex_contribution,
    SignalName.IV_SKEW: iv_skew_contribution,
    SignalName.VIX_REGIME: vix_contribution,
    SignalName.MACRO: macro_contribution,
    SignalName.VWAP: vwap_contribution,
    SignalName.VOLUME_DELTA: volume_delta_contribution,
    SignalName.EXPECTED_MOVE: expected_move_contribution,
    SignalName.MOMENTUM: momentum_contribution,
}


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------

def classify_direction(score: float, s: Settings) -> SignalDirection:
    if score > s.scoring.bullish_above:
        return SignalDirection.BULLISH
    if score < s.scoring.bearish_below:
        return SignalDirection.BEARISH
    return SignalDirection.NEUTRAL


def _agrees(contribution: float, direction: SignalDirection, flat: float) -> bool:
    if direction == SignalDirection.BULLISH:
        return contribution >= flat
    if direction == SignalDirection.BEARISH:
        return contribution <= -flat
    return abs(contribution) < flat


def _thesis(
    symbol: str,
    direction: SignalDirection,
    score: float,
    confidence: float,
    contributions: list[SignalContribution],
    top: list[SignalName],
    total: int,
) -> str:
    name = symbol or "Underlying"
    if not contributions:
        return f"{name}: no signals available, score held at neutral."

    by_name = {c.name: c for c in contributions}
    sentences = [
        f"{name} {direction.upper()} bias (score {score:+.0f}, confidence {confidence:.0f}%) "
        f"from {len(contributions)}/{total} signals."
    ]
    if top:
        drivers = [f"{SIGNAL_LABELS[n]} ({by_name[n].tag})" for n in top]
        sentences.append("Leading drivers: " + ", ".join(drivers) + ".")

    sign = 1.0 if score >= 0 else -1.0
    opposing = [c for c in contributions if c.weighted * sign < 0 and c.name not in top]
    if direction != SignalDirection.NEUTRAL and opposing:
        worst = max(opposing, key=lambda c: abs(c.weighted))
        sentences.append(f"{SIGNAL_LABELS[worst.name]} leans the other way ({worst.tag}).")
    return " ".join(sentences)


def compute_unified_score(
    outcomes: Mapping[SignalName, SignalOutcome],
    settings: Settings,
    symbol: str = "",
) -> UnifiedScoreResult:
    """Fuse per-signal outcomes into one bounded score.

    Works with any subset of signals available, including none.
    """
    cfg = settings.scoring
    available: list[tuple[SignalName, float, float, str]] = []
    for name in SignalName:
        outcome = outcomes.get(name)
        if not isinstance(outcome, Available):
            continue
        contribution, tag = ADAPTERS[name](outcome.value, settings)
        available.append((name, cfg.weights.get(name.value, 0.0), contribution, tag))

    weight_total = sum(w for _, w, _, _ in available)
    contributions = [
        SignalContribution(
            name=name,
            weight=w,
            applied_weight=(w / weight_total) if weight_total > 0 else 0.0,
            contribution=c,
            weighted=((w / weight_total) * c) if weight_total > 0 else 0.0,
            tag=tag,
        )
        for name, w, c, tag in available
    ]

    raw = 100.0 * sum(c.weighted for c in contributions)
    # Classify the published value so score and direction never disagree.
    score = round(float(np.clip(raw, -100.0, 100.0)), 2)
    direction = classify_direction(score, settings)

    n_total = len(SignalName)
    n_avail = len(contributions)
    if n_avail:
        agreeing = sum(1 for c in contributions if _agrees(c.contribution, direction, cfg.flat_contribution))
        agreement = agreeing / n_avail
    else:
        agreement = 0.0
    completeness = n_avail / n_total
    confidence = min(cfg.confidence_cap, 100.0 * agreement * completeness)

    ranked = sorted(
        (c for c in contributions if c.weighted != 0.0),
        key=lambda c: abs(c.weighted),
        reverse=True,
    )
    top = [c.name for c in ranked[: cfg.top_signals]]

    return UnifiedScoreResult(
        score=score,
        direction=direction,
        confidence=round(confidence, 1),
        top_signals=tuple(top),
        contributions=tuple(contributions),
        available_signals=n_avail,
        total_signals=n_total,
        thesis=_thesis(symbol, direction, score, confidence, contributions, top, n_total),
    )
