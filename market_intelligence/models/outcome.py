"""Tagged per-signal outcome: a computed result or an explicit reason it is missing."""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class SignalName(StrEnum):
    PCR = "pcr"
    GEX = "gex"
    IV_SKEW = "iv_skew"
    VIX_REGIME = "vix_regime"
    MACRO = "macro"
    VWAP = "vwap"
    VOLUME_DELTA = "volume_delta"
    EXPECTED_MOVE = "expected_move"
    MOMENTUM = "momentum"


SIGNAL_LABELS: dict[SignalName, str] = {
    SignalName.PCR: "Put/call ratio",
    SignalName.GEX: "Dealer gamma",
    SignalName.IV_SKEW: "IV skew",
    SignalName.VIX_REGIME: "VIX regime",
    SignalName.MACRO: "Macro backdrop",
    SignalName.VWAP: "VWAP location",
    SignalName.VOLUME_DELTA: "Volume delta",
    SignalName.EXPECTED_MOVE: "Expected move",
    SignalName.MOMENTUM: "Momentum",
}


class ReasonCode(StrEnum):
    DATA_UNAVAILABLE = "data_unavailable"
    TIMEOUT = "timeout"
    INSUFFICIENT_DATA = "insufficient_data"
    MARKET_CLOSED = "market_closed"
    COMPUTATION_FAILED = "computation_failed"
    CANCELLED = "cancelled"


class Available(BaseModel, Generic[T]):
    """A signal that produced a result. ``degraded`` marks a fallback path."""

    model_config = ConfigDict(frozen=True)

    status: Literal["available"] = "available"
    value: T
    degraded: bool = False
    notes: tuple[str, ...] = ()


class Unavailable(BaseModel):
    """A signal that could not be computed this cycle."""

    model_config = ConfigDict(frozen=True)

    status: Literal["unavailable"] = "unavailable"
    reason: ReasonCode
    detail: str = ""


SignalOutcome = Union[Available, Unavailable]
