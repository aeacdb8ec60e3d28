"""Shared options-chain helpers: expiry slicing, ATM strike and ATM IV."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from market_intelligence.models.market import OptionsChainEntry


def front_expiry(chain: Sequence[OptionsChainEntry]) -> list[OptionsChainEntry]:
    """Contracts of the nearest expiration.

    Entries without an expiration are treated as a single expiry and
    returned unchanged.
    """
    dated = [e.expiration for e in chain if e.expiration is not None]
    if not dated:
        return list(chain)
    nearest = min(dated)
    return [e for e in chain if e.expiration == nearest]


def find_atm_strike(strikes: Sequence[float], underlying_price: float) -> float:
    """Find the strike closest to the underlying price."""
    strikes_arr = np.asarray(strikes, dtype=float)
    idx = np.argmin(np.abs(strikes_arr - underlying_price))
    return float(strikes_arr[idx])


def atm_iv(chain: Sequence[OptionsChainEntry], underlying_price: float) -> tuple[float, float] | None:
    """(atm_strike, atm_iv) using the mean IV of the contracts at the ATM strike.

    Only contracts with a positive IV are considered. Returns None if no
    contract carries IV.
    """
    priced = [e for e in chain if e.implied_volatility > 0]
    if not priced:
        return None
    strike = find_atm_strike(sorted({e.strike for e in priced}), underlying_price)
    ivs = [e.implied_volatility for e in priced if e.strike == strike]
    return strike, float(np.mean(ivs))
