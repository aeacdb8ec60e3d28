"""The published intelligence snapshot and its lifecycle tags."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from market_intelligence.models.intraday import VolumeDeltaResult, VWAPBandResult
from market_intelligence.models.macro import MacroResult
from market_intelligence.models.momentum import MomentumResult
from market_intelligence.models.options import (
    ExpectedMoveResult,
    GEXResult,
    IVSkewResult,
    PCRResult,
)
from market_intelligence.models.outcome import (
    Available,
    ReasonCode,
    SignalName,
    SignalOutcome,
    Unavailable,
)
from market_intelligence.models.score import UnifiedScoreResult
from market_intelligence.models.volatility import VIXRegimeResult


class SnapshotQuality(StrEnum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    STALE = "stale"


class LifecycleState(StrEnum):
    PENDING = "pending"         # startup, nothing published yet
    COMPUTING = "computing"
    READY = "ready"
    STALE = "stale"             # last snapshot older than the freshness threshold


class IntelligenceSnapshot(BaseModel):
    """Immutable, multi-signal view of one underlying at one as-of instant."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    timestamp: datetime          # publication stamp, strictly increasing per symbol
    as_of: datetime              # when the cycle's market data was captured
    spot_price: float
    market_open: bool

    pcr: PCRResult | None = None
    gex: GEXResult | None = None
    iv_skew: IVSkewResult | None = None
    vix_regime: VIXRegimeResult | None = None
    macro: MacroResult | None = None
    vwap: VWAPBandResult | None = None
    volume_delta: VolumeDeltaResult | None = None
    expected_move: ExpectedMoveResult | None = None
    momentum: MomentumResult | None = None

    unified_score: UnifiedScoreResult | None = None
    quality: SnapshotQuality = SnapshotQuality.PARTIAL
    unavailable: tuple[tuple[SignalName, Unavailable], ...] = ()
    degraded: tuple[SignalName, ...] = ()

    def result(self, name: SignalName) -> BaseModel | None:
        return getattr(self, name.value)

    def missing(self, name: SignalName) -> Unavailable | None:
        """Why ``name`` is absent from this snapshot, or None if it is present."""
        return next((o for n, o in self.unavailable if n == name), None)

    @property
    def unavailable_signals(self) -> tuple[SignalName, ...]:
        return tuple(n for n, _ in self.unavailable)

    def outcomes(self) -> dict[SignalName, SignalOutcome]:
        """Rebuild the per-signal variants from the published fields."""
        out: dict[SignalName, SignalOutcome] = {}
        for name in SignalName:
            value = self.result(name)
            if value is not None:
                out[name] = Available(value=value, degraded=name in self.degraded)
            else:
                out[name] = self.missing(name) or Unavailable(
                    reason=ReasonCode.DATA_UNAVAILABLE, detail="no result published",
                )
        return out

    @property
    def available_count(self) -> int:
        return sum(1 for name in SignalName if self.result(name) is not None)

    def age_seconds(self, now: datetime) -> float:
        return (now - self.timestamp).total_seconds()
