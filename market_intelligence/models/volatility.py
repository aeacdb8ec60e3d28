"""Pydantic models for the VIX regime classifier."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class VIXRegime(StrEnum):
    COMPLACENT = "complacent"
    NORMAL = "normal"
    ELEVATED = "elevated"
    PANIC = "panic"


class TermStructure(StrEnum):
    CONTANGO = "contango"
    FLAT = "flat"
    BACKWARDATION = "backwardation"


class TermSource(StrEnum):
    VIX3M = "vix3m"         # longer-dated index quote
    AVERAGE = "average"     # 20-day average proxy


class VIXRegimeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    vix: float
    vix_20d_avg: float
    regime: VIXRegime
    percentile: float               # 0-100 within the trailing window
    term_structure: TermStructure
    term_spread: float              # back - front (positive = contango)
    term_source: TermSource
    trading_implication: str
