"""Shared test fixtures for market_intelligence tests."""

from __future__ import annotations

import threading
import time
from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone

import pytest

from market_intelligence.config import Settings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.data.providers.base import MarketDataProvider
from market_intelligence.models.market import (
    IntradayBar,
    MacroQuote,
    OptionsChainEntry,
    OptionType,
)

# Wednesday 10:00 New York time (EST), inside the regular session.
SESSION_NOW = datetime(2026, 3, 4, 15, 0, tzinfo=timezone.utc)
# Saturday.
WEEKEND_NOW = datetime(2026, 3, 7, 15, 0, tzinfo=timezone.utc)


def make_chain(
    spot: float = 500.0,
    step: float = 5.0,
    strikes_around: int = 5,
    call_volume: int = 1000,
    put_volume: int = 1000,
    call_oi: int = 5000,
    put_oi: int = 5000,
    gamma: float = 0.01,
    base_iv: float = 20.0,
    put_slope: float = 1.5,
    call_slope: float = 0.5,
    expiration: date | None = date(2026, 3, 20),
) -> list[OptionsChainEntry]:
    """Synthetic chain centred on ``spot``.

    Call delta falls 0.08 per strike step from 0.5 at the money; put delta is
    call delta - 1. IV rises ``put_slope`` per step below spot on the put side
    and ``call_slope`` per step above spot on the call side.
    """
    rows = []
    for j in range(-strikes_around, strikes_around + 1):
        strike = spot + j * step
        call_delta = round(min(max(0.5 - 0.08 * j, 0.02), 0.98), 4)
        rows.append(OptionsChainEntry(
            strike=strike,
            option_type=OptionType.CALL,
            volume=call_volume,
            open_interest=call_oi,
            delta=call_delta,
            gamma=gamma,
            implied_volatility=base_iv + max(0, j) * call_slope,
            expiration=expiration,
        ))
        rows.append(OptionsChainEntry(
            strike=strike,
            option_type=OptionType.PUT,
            volume=put_volume,
            open_interest=put_oi,
            delta=round(call_delta - 1, 4),
            gamma=gamma,
            implied_volatility=base_iv + max(0, -j) * put_slope,
            expiration=expiration,
        ))
    return rows


def make_bars(
    n: int = 30,
    start_price: float = 500.0,
    drift: float = 0.1,
    volume: float = 10_000,
    start: datetime = datetime(2026, 3, 4, 14, 30, tzinfo=timezone.utc),
) -> list[IntradayBar]:
    """Deterministic 5-minute bars; each bar opens at the prior close."""
    bars = []
    price = start_price
    for i in range(n):
        close = price + drift
        bars.append(IntradayBar(
            timestamp=start + timedelta(minutes=5 * i),
            open=price,
            high=max(price, close) + 0.05,
            low=min(price, close) - 0.05,
            close=close,
            volume=volume,
        ))
        price = close
    return bars


def make_closes(n: int = 60, start: float = 100.0, step: float = 0.5) -> list[float]:
    return [start + step * i for i in range(n)]


def make_macro_quotes(equity: float = 0.5, bond: float = -0.3, dollar: float = 0.0, gold: float = 0.1) -> dict[str, MacroQuote]:
    pct = {"SPY": equity, "TLT": bond, "UUP": dollar, "GLD": gold}
    return {
        sym: MacroQuote(symbol=sym, price=100.0, change=p, change_pct=p)
        for sym, p in pct.items()
    }


class FakeClock:
    """Manually advanced clock; every call returns the same instant until moved."""

    def __init__(self, now: datetime = SESSION_NOW) -> None:
        self.now = now
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now = self.now + timedelta(seconds=seconds)


class FakeProvider(MarketDataProvider):
    """Scripted in-memory provider.

    ``failures`` maps a method name to an exception to raise; ``delays``
    maps a method name to seconds to sleep first. ``gate``, when set, makes
    ``fetch_spot`` for the main symbol block until the event is set.
    """

    def __init__(
        self,
        spot: float = 500.0,
        chain: Sequence[OptionsChainEntry] | None = None,
        bars: Sequence[IntradayBar] | None = None,
        closes: Sequence[float] | None = None,
        vix_history: Sequence[float] | None = None,
        vix_term: float | None = 20.0,
        macro_quotes: dict[str, MacroQuote] | None = None,
        spots: dict[str, float] | None = None,
    ) -> None:
        self.spot = spot
        self.chain = list(chain) if chain is not None else make_chain(spot)
        self.bars = list(bars) if bars is not None else make_bars(start_price=spot)
        self.closes = list(closes) if closes is not None else make_closes()
        self.vix_history = list(vix_history) if vix_history is not None else [18.0] * 30
        self.vix_term = vix_term
        self.macro_quotes = macro_quotes if macro_quotes is not None else make_macro_quotes()
        self.spots = spots or {}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.gate: threading.Event | None = None
        self.calls: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def provider_name(self) -> str:
        return "fake"

    def _enter(self, method: str) -> None:
        with self._lock:
            self.calls[method] = self.calls.get(method, 0) + 1
        if method in self.delays:
            time.sleep(self.delays[method])
        if method in self.failures:
            raise self.failures[method]

    def fetch_spot(self, symbol: str) -> float:
        if symbol == "^VIX3M":
            self._enter("fetch_vix_term")
            if self.vix_term is None:
                raise DataUnavailable("fake", symbol, "no term quote")
            return self.vix_term
        if symbol in self.spots:
            return self.spots[symbol]
        if self.gate is not None:
            self.gate.wait(5)
        self._enter("fetch_spot")
        return self.spot

    def fetch_chain(self, symbol: str) -> list[OptionsChainEntry]:
        self._enter("fetch_chain")
        return list(self.chain)

    def fetch_macro_quotes(self, symbols: Sequence[str]) -> dict[str, MacroQuote]:
        self._enter("fetch_macro_quotes")
        return {s: q for s, q in self.macro_quotes.items() if s in symbols}

    def fetch_intraday_bars(self, symbol: str) -> list[IntradayBar]:
        self._enter("fetch_intraday_bars")
        return list(self.bars)

    def fetch_daily_closes(self, symbol: str, lookback_days: int) -> list[float]:
        if symbol == "^VIX":
            self._enter("fetch_vix_history")
            return list(self.vix_history)
        self._enter("fetch_daily_closes")
        return list(self.closes)


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    engine = s.engine.model_copy(update={
        "symbols": ["SPY"],
        "fetch_timeout_seconds": 2.0,
        "force_refresh_timeout_seconds": 5.0,
        "initial_delay_seconds": 0.0,
    })
    return s.model_copy(update={"engine": engine})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def chain() -> list[OptionsChainEntry]:
    return make_chain()


@pytest.fixture
def bars() -> list[IntradayBar]:
    return make_bars()
