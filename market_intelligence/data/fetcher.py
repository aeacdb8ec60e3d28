"""MarketDataFetcher: one concurrent fetch of everything a cycle consumes."""

from __future__ import annotations

import concurrent.futures
import logging
import math
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from enum import StrEnum
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field

from market_intelligence.config import MarketHoursSettings, Settings
from market_intelligence.data.exceptions import CycleFailed, DataUnavailable
from market_intelligence.data.providers.base import MarketDataProvider
from market_intelligence.models.market import IntradayBar, MacroQuote, OptionsChainEntry
from market_intelligence.models.outcome import ReasonCode, Unavailable

logger = logging.getLogger(__name__)


class InputSource(StrEnum):
    SPOT = "spot"
    CHAIN = "chain"
    PROXY_SPOT = "proxy_spot"
    BARS = "bars"
    DAILY_CLOSES = "daily_closes"
    MACRO = "macro"
    VIX_HISTORY = "vix_history"
    VIX_TERM = "vix_term"


class MarketInputs(BaseModel):
    """Frozen bundle of a cycle's raw data, captured at one as-of instant.

    A field is None when its fetch failed; ``errors`` then says why.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    as_of: datetime
    spot: float
    market_open: bool = True
    chain_symbol: str = ""
    chain: list[OptionsChainEntry] | None = None
    bars: list[IntradayBar] | None = None
    daily_closes: list[float] | None = None
    macro_quotes: dict[str, MacroQuote] = Field(default_factory=dict)
    vix_history: list[float] | None = None
    vix_term: float | None = None
    errors: dict[InputSource, Unavailable] = Field(default_factory=dict)

    def missing(self, source: InputSource) -> Unavailable:
        return self.errors.get(source) or Unavailable(
            reason=ReasonCode.DATA_UNAVAILABLE, detail=f"{source} not fetched",
        )


def is_market_open(now: datetime, cfg: MarketHoursSettings) -> bool:
    """Regular session check: weekdays between the configured open and close.

    Exchange holidays are not modelled.
    """
    local = now.astimezone(ZoneInfo(cfg.timezone))
    if local.weekday() >= 5:
        return False
    hhmm = local.strftime("%H:%M")
    return cfg.market_open <= hhmm < cfg.market_close


def rescale_chain(chain: list[OptionsChainEntry], ratio: float) -> list[OptionsChainEntry]:
    """Express a proxy's chain at the underlying's price scale.

    Strikes scale by ``ratio``; gamma (per dollar) scales by its inverse.
    """
    return [
        e.model_copy(update={"strike": e.strike * ratio, "gamma": e.gamma / ratio})
        for e in chain
    ]


class MarketDataFetcher:
    """Runs all provider calls of a cycle concurrently, each bounded by a timeout.

    Every cycle gets its own worker threads, so a provider call that never
    returns only costs the thread it hangs in; later cycles start with a full
    complement. Market-wide inputs (VIX history, VIX term, macro quotes) are
    shared by every symbol and reused for ``market_wide_ttl_seconds``.
    """

    SHARED_SOURCES = (InputSource.MACRO, InputSource.VIX_HISTORY, InputSource.VIX_TERM)

    def __init__(
        self,
        provider: MarketDataProvider,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._shared: dict[InputSource, tuple[datetime, object]] = {}
        self._shared_lock = threading.Lock()
        self._closed = False

    @property
    def provider(self) -> MarketDataProvider:
        return self._provider

    def close(self) -> None:
        self._closed = True
        with self._shared_lock:
            self._shared.clear()

    def _cached(self, src: InputSource, now: datetime) -> object | None:
        ttl = self._settings.engine.market_wide_ttl_seconds
        with self._shared_lock:
            entry = self._shared.get(src)
        if entry is None:
            return None
        fetched_at, value = entry
        if (now - fetched_at).total_seconds() >= ttl:
            return None
        return value

    def _remember(self, src: InputSource, now: datetime, value: object) -> None:
        if not value or (src == InputSource.VIX_TERM and _positive_price(value) is None):
            return
        with self._shared_lock:
            self._shared[src] = (now, value)

    def fetch(self, symbol: str) -> MarketInputs:
        """Fetch one cycle's inputs for ``symbol``.

        Raises:
            CycleFailed: if the spot price cannot be obtained or is not a
                positive finite number.
        """
        if self._closed:
            raise CycleFailed(symbol, "fetcher closed")
        s = self._settings
        p = self._provider
        as_of = self._clock()
        market_open = is_market_open(as_of, s.market_hours)
        proxy = s.engine.option_proxies.get(symbol.upper())
        chain_symbol = proxy or symbol

        calls: dict[InputSource, Callable[[], object]] = {
            InputSource.SPOT: lambda: p.fetch_spot(symbol),
            InputSource.CHAIN: lambda: p.fetch_chain(chain_symbol),
            InputSource.DAILY_CLOSES: lambda: p.fetch_daily_closes(symbol, s.momentum.lookback_days),
            InputSource.MACRO: lambda: p.fetch_macro_quotes(list(s.macro.proxies.values())),
            InputSource.VIX_HISTORY: lambda: p.fetch_daily_closes(s.vix.symbol, s.vix.percentile_window),
            InputSource.VIX_TERM: lambda: p.fetch_spot(s.vix.term_symbol),
        }
        if proxy:
            calls[InputSource.PROXY_SPOT] = lambda: p.fetch_spot(proxy)
        if market_open or not s.intraday.require_market_open:
            calls[InputSource.BARS] = lambda: p.fetch_intraday_bars(symbol)

        values: dict[InputSource, object] = {}
        for src in self.SHARED_SOURCES:
            cached = self._cached(src, as_of)
            if cached is not None:
                values[src] = cached
                del calls[src]

        errors: dict[InputSource, Unavailable] = {}
        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(calls), thread_name_prefix=f"intel-fetch-{symbol}",
        )
        try:
            futures = {src: pool.submit(fn) for src, fn in calls.items()}
            deadline = time.monotonic() + s.engine.fetch_timeout_seconds
            for src, future in futures.items():
                try:
                    values[src] = future.result(timeout=max(0.0, deadline - time.monotonic()))
                except concurrent.futures.TimeoutError:
                    logger.warning("%s fetch for %s timed out after %.1fs", src, symbol,
                                   s.engine.fetch_timeout_seconds)
                    errors[src] = Unavailable(reason=ReasonCode.TIMEOUT, detail=f"{src} fetch timed out")
                except DataUnavailable as e:
                    logger.warning("%s fetch failed for %s: %s", src, symbol, e)
                    errors[src] = Unavailable(reason=e.reason, detail=str(e))
                except Exception as e:
                    logger.warning("%s fetch failed for %s", src, symbol, exc_info=True)
                    errors[src] = Unavailable(reason=ReasonCode.DATA_UNAVAILABLE, detail=f"{src}: {e}")
                else:
                    if src in self.SHARED_SOURCES:
                        self._remember(src, as_of, values[src])
        finally:
            # Hung calls keep their own threads; nothing waits on them.
            pool.shutdown(wait=False, cancel_futures=True)

        spot = _positive_price(values.get(InputSource.SPOT))
        if spot is None:
            detail = (errors[InputSource.SPOT].detail if InputSource.SPOT in errors
                      else f"invalid spot {values.get(InputSource.SPOT)}")
            raise CycleFailed(symbol, f"spot price unavailable ({detail})")

        chain = values.get(InputSource.CHAIN)
        if proxy and chain is not None:
            proxy_spot = _positive_price(values.get(InputSource.PROXY_SPOT))
            if proxy_spot is None:
                errors[InputSource.CHAIN] = errors.get(InputSource.PROXY_SPOT) or Unavailable(
                    reason=ReasonCode.DATA_UNAVAILABLE,
                    detail=f"no valid {proxy} price to rescale the proxy chain",
                )
                chain = None
            else:
                chain = rescale_chain(chain, spot / proxy_spot)

        if InputSource.BARS not in calls:
            errors[InputSource.BARS] = Unavailable(
                reason=ReasonCode.MARKET_CLOSED, detail="regular session closed",
            )

        vix_term = _positive_price(values.get(InputSource.VIX_TERM))
        if vix_term is None and InputSource.VIX_TERM in values:
            errors[InputSource.VIX_TERM] = Unavailable(
                reason=ReasonCode.DATA_UNAVAILABLE,
                detail=f"invalid {s.vix.term_symbol} price {values[InputSource.VIX_TERM]}",
            )
        return MarketInputs(
            symbol=symbol,
            as_of=as_of,
            spot=spot,
            market_open=market_open,
            chain_symbol=chain_symbol,
            chain=chain,
            bars=values.get(InputSource.BARS),
            daily_closes=values.get(InputSource.DAILY_CLOSES),
            macro_quotes=values.get(InputSource.MACRO) or {},
            vix_history=values.get(InputSource.VIX_HISTORY),
            vix_term=vix_term,
            errors=errors,
        )


def _positive_price(value: object) -> float | None:
    """``value`` as a float when it is a finite price above zero, else None."""
    if value is None:
        return None
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        return None
    return price
