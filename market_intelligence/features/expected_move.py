"""Expected 1-day / 1-week move implied by ATM volatility."""

from __future__ import annotations

import math
from collections.abc import Sequence

from market_intelligence.config import ExpectedMoveSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.features.chain import atm_iv, front_expiry
from market_intelligence.models.market import OptionsChainEntry
from market_intelligence.models.options import ExpectedMoveResult


def expected_move_from_iv(
    spot: float, iv_pct: float, cfg: ExpectedMoveSettings,
) -> ExpectedMoveResult:
    """move = spot * IV * sqrt(days / annualization)."""
    iv = iv_pct / 100.0
    daily = spot * iv * math.sqrt(1 / cfg.annualization_factor)
    weekly = spot * iv * math.sqrt(cfg.weekly_days / cfg.annualization_factor)
    return ExpectedMoveResult(
        spot_price=spot,
        atm_iv=iv_pct,
        daily_move=daily,
        daily_move_pct=daily / spot * 100,
        weekly_move=weekly,
        weekly_move_pct=weekly / spot * 100,
        upper_target=spot + daily,
        lower_target=spot - daily,
    )


def compute_expected_move(
    chain: Sequence[OptionsChainEntry],
    spot: float,
    cfg: ExpectedMoveSettings,
    symbol: str = "",
) -> ExpectedMoveResult:
    if spot <= 0:
        raise DataUnavailable("expected_move", symbol, f"invalid spot price {spot}")
    atm = atm_iv(front_expiry(chain), spot)
    if atm is None or atm[1] <= 0:
        raise DataUnavailable("expected_move", symbol, "no ATM implied volatility")
    return expected_move_from_iv(spot, atm[1], cfg)
