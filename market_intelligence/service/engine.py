"""IntelligenceEngine: top-level facade composing fetcher, assembler and schedulers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from market_intelligence.config import Settings, get_settings
from market_intelligence.data.fetcher import MarketDataFetcher
from market_intelligence.data.providers.base import MarketDataProvider
from market_intelligence.models.snapshot import IntelligenceSnapshot, LifecycleState
from market_intelligence.service.assembler import SnapshotAssembler
from market_intelligence.service.cache import SnapshotCache
from market_intelligence.service.scheduler import RefreshScheduler
from market_intelligence.service.signals import SignalComputer

logger = logging.getLogger(__name__)


class IntelligenceEngine:
    """Periodically recomputed intelligence snapshots for a set of symbols.

    The configured ``engine.symbols`` are tracked from construction; any other
    symbol is tracked from its first ``force_refresh``.

    Usage::

        from market_intelligence import IntelligenceEngine

        with IntelligenceEngine() as engine:     # starts the refresh timers
            snap = engine.force_refresh("SPY")
            print(snap.unified_score.thesis)

            snap = engine.get_snapshot("SPY")    # never blocks
    """

    def __init__(
        self,
        settings: Settings | None = None,
        provider: MarketDataProvider | None = None,
        computers: list[SignalComputer] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        if provider is None:
            from market_intelligence.data.providers.yfinance import YFinanceProvider

            provider = YFinanceProvider(expirations=self.settings.engine.chain_expirations)
        self.provider = provider
        self._clock = clock

        fetcher = MarketDataFetcher(provider, self.settings, clock=clock)
        self.assembler = SnapshotAssembler(fetcher, self.settings, computers=computers, clock=clock)
        self._schedulers: dict[str, RefreshScheduler] = {}
        self._lock = threading.Lock()
        self._running = False
        self._stopped = False
        for symbol in self.settings.engine.symbols:
            self._track(symbol)

    def _track(self, symbol: str) -> RefreshScheduler | None:
        key = symbol.upper()
        with self._lock:
            sched = self._schedulers.get(key)
            if sched is None and not self._stopped:
                cache = SnapshotCache(key, self.settings.engine.staleness_seconds, clock=self._clock)
                sched = RefreshScheduler(key, self.assembler, cache, self.settings)
                self._schedulers[key] = sched
                if self._running:
                    sched.start()
                logger.debug("Tracking %s", key)
            return sched

    @property
    def symbols(self) -> list[str]:
        with self._lock:
            return [s.symbol for s in self._schedulers.values()]

    def scheduler(self, symbol: str) -> RefreshScheduler | None:
        """The scheduler for ``symbol``, or None if it has never been requested."""
        return self._schedulers.get(symbol.upper())

    def get_snapshot(self, symbol: str, require_fresh: bool = False) -> IntelligenceSnapshot | None:
        """Latest published snapshot; None until the first cycle completes.

        Symbols outside the configured set have nothing published until a
        ``force_refresh`` starts tracking them. A stale snapshot is returned
        marked ``quality=stale``, or raises ``StaleSnapshot`` when
        ``require_fresh`` is set.
        """
        sched = self.scheduler(symbol)
        if sched is None:
            return None
        return sched.cache.require_fresh() if require_fresh else sched.cache.current()

    def force_refresh(self, symbol: str, timeout: float | None = None) -> IntelligenceSnapshot | None:
        """Run a cycle now, tracking ``symbol`` from here on if it is new.

        A newly tracked symbol joins the periodic refresh when the engine is
        running. After ``stop()`` nothing new is tracked and an unseen symbol
        gets None.
        """
        sched = self._track(symbol)
        if sched is None:
            return None
        return sched.force_refresh(timeout)

    def state(self, symbol: str) -> LifecycleState:
        sched = self.scheduler(symbol)
        return sched.state if sched is not None else LifecycleState.PENDING

    def start(self) -> None:
        with self._lock:
            self._running = True
            schedulers = list(self._schedulers.values())
        for sched in schedulers:
            sched.start()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._stopped = True
            schedulers = list(self._schedulers.values())
        for sched in schedulers:
            sched.stop()
        self.assembler.close()

    def __enter__(self) -> IntelligenceEngine:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
