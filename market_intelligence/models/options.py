"""Pydantic models for options-chain derived signals (PCR, GEX, skew, expected move)."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from market_intelligence.models.score import SignalDirection


class PCRByStrike(BaseModel):
    model_config = ConfigDict(frozen=True)

    strike: float
    call_volume: int
    put_volume: int
    call_oi: int
    put_oi: int
    pcr: float | None         # put vol / call vol; None when no call volume


class PCRResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    by_strike: tuple[PCRByStrike, ...]
    overall_pcr: float | None         # total put vol / total call vol
    oi_weighted_pcr: float | None     # total put OI / total call OI
    total_call_volume: int
    total_put_volume: int
    total_call_oi: int
    total_put_oi: int
    interpretation: SignalDirection
    reason: str | None = None         # set when a ratio is undefined


class GEXLevelType(StrEnum):
    SUPPORT = "support"
    RESISTANCE = "resistance"
    MAGNET = "magnet"


class GEXByStrike(BaseModel):
    model_config = ConfigDict(frozen=True)

    strike: float
    call_oi: int
    put_oi: int
    call_gex: float           # >= 0
    put_gex: float            # <= 0
    net_gex: float


class GEXLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    strike: float
    net_gex: float
    type: GEXLevelType


class GEXResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    spot_price: float
    by_strike: tuple[GEXByStrike, ...]
    total_net_gex: float
    flip_point: float | None
    max_gamma_strike: float
    top_levels: tuple[GEXLevel, ...]


class IVSkewResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    atm_strike: float
    atm_iv: float             # percent
    put_25d_iv: float
    call_25d_iv: float
    skew: float               # put_25d_iv - call_25d_iv, vol points
    skew_ratio: float | None  # put_25d_iv / call_25d_iv
    bucket: str
    interpretation: str
    put_bracketed: bool
    call_bracketed: bool


class ExpectedMoveResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    spot_price: float
    atm_iv: float
    daily_move: float
    daily_move_pct: float
    weekly_move: float
    weekly_move_pct: float
    upper_target: float
    lower_target: float
