"""Pydantic models for intraday price-location and flow signals."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class VWAPPosition(StrEnum):
    ABOVE_UPPER2 = "above_upper2"
    BETWEEN_UPPER1_UPPER2 = "between_upper1_upper2"
    BETWEEN_VWAP_UPPER1 = "between_vwap_upper1"
    AT_VWAP = "at_vwap"
    BETWEEN_LOWER1_VWAP = "between_lower1_vwap"
    BETWEEN_LOWER2_LOWER1 = "between_lower2_lower1"
    BELOW_LOWER2 = "below_lower2"


class VWAPBandResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    vwap: float
    std_dev: float
    upper1: float
    lower1: float
    upper2: float
    lower2: float
    current_price: float
    distance_pct: float
    position: VWAPPosition
    bar_count: int


class DeltaDirection(StrEnum):
    BUYING = "buying"
    SELLING = "selling"
    NEUTRAL = "neutral"


class VolumeDeltaResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    cumulative_delta: float
    direction: DeltaDirection
    divergence: bool
    bars_analyzed: int
    divergence_window: int
    note: str = "Approximated from bar-level tick rule, not tick-level aggressor data."
