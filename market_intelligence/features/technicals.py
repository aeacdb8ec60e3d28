"""Indicator helpers over daily closes."""

from __future__ import annotations

import numpy as np
import pandas as pd


def compute_ema(close: pd.Series, span: int) -> pd.Series:
    """Exponential moving average."""
    return close.ewm(span=span, adjust=False).mean()


def compute_rsi(close: pd.Series, period: int) -> pd.Series:
    """Wilder RSI. 100 when the window has no losses, 50 when it is flat."""
    change = close.diff().fillna(0.0)
    wilder = {"alpha": 1.0 / period, "min_periods": period, "adjust": False}
    up = change.clip(lower=0.0).ewm(**wilder).mean()
    down = (-change).clip(lower=0.0).ewm(**wilder).mean()

    rsi = 100.0 - 100.0 / (1.0 + up / down.replace(0, np.nan))
    rsi = rsi.mask(down == 0, 100.0)
    return rsi.mask((up == 0) & (down == 0), 50.0)


def normalized_slope(close: pd.Series, bars: int) -> float:
    """Least-squares slope of the last ``bars`` closes, as percent of their mean per bar."""
    tail = close.iloc[-bars:].to_numpy(dtype=float)
    if tail.size < 2:
        return 0.0
    x = np.arange(tail.size, dtype=float)
    slope = np.polyfit(x, tail, 1)[0]
    mean = tail.mean()
    if mean == 0:
        return 0.0
    return float(slope / mean * 100)
