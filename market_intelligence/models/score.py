"""Pydantic models for the fused directional score."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from market_intelligence.models.outcome import SignalName


class SignalDirection(StrEnum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class SignalContribution(BaseModel):
    """How one available signal moved the unified score."""

    model_config = ConfigDict(frozen=True)

    name: SignalName
    weight: float             # configured (raw) weight
    applied_weight: float     # renormalized over available signals; sums to 1
    contribution: float       # adapter output in [-1, 1]
    weighted: float           # applied_weight * contribution
    tag: str                  # regime/interpretation tag used in the thesis


class UnifiedScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float                      # [-100, 100]
    direction: SignalDirection
    confidence: float                 # 0-100
    top_signals: tuple[SignalName, ...]
    contributions: tuple[SignalContribution, ...]
    available_signals: int
    total_signals: int
    thesis: str
