"""RefreshScheduler: periodic recompute with at most one cycle in flight."""

from __future__ import annotations

import concurrent.futures
import logging
import threading

from market_intelligence.config import Settings
from market_intelligence.data.exceptions import CycleFailed, CycleSkipped
from market_intelligence.models.outcome import SignalName
from market_intelligence.models.snapshot import IntelligenceSnapshot, LifecycleState
from market_intelligence.service.assembler import SnapshotAssembler
from market_intelligence.service.cache import SnapshotCache

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Drives compute cycles for one symbol.

    Cycles run on a single-worker executor, so two never overlap. A timer
    tick that lands while a cycle is in flight is skipped and counted;
    ``force_refresh`` joins the in-flight cycle instead of starting another.
    """

    def __init__(
        self,
        symbol: str,
        assembler: SnapshotAssembler,
        cache: SnapshotCache,
        settings: Settings,
    ) -> None:
        self.symbol = symbol
        self.assembler = assembler
        self.cache = cache
        self.settings = settings

        self.skipped_cycles = 0
        self.failed_cycles = 0
        self.completed_cycles = 0

        self._lock = threading.Lock()
        self._inflight: concurrent.futures.Future | None = None
        self._worker = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"intel-cycle-{symbol}",
        )
        self._stop = threading.Event()
        self._cancel = threading.Event()
        self._timer: threading.Thread | None = None

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        future = self._inflight
        if future is not None and not future.done():
            return LifecycleState.COMPUTING
        if self.cache.latest is None:
            return LifecycleState.PENDING
        if self.cache.is_stale():
            return LifecycleState.STALE
        return LifecycleState.READY

    @property
    def running(self) -> bool:
        return self._timer is not None and self._timer.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._cancel.clear()
        self._timer = threading.Thread(
            target=self._loop, name=f"intel-timer-{self.symbol}", daemon=True,
        )
        self._timer.start()
        logger.info(
            "Refresh scheduler started for %s (every %.0fs)",
            self.symbol, self.settings.engine.refresh_interval_seconds,
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the timer and cancel any in-flight cycle; it will not publish."""
        self._stop.set()
        self._cancel.set()
        if self._timer is not None:
            self._timer.join(timeout)
            self._timer = None
        self._worker.shutdown(wait=False, cancel_futures=True)
        logger.info("Refresh scheduler stopped for %s", self.symbol)

    def _loop(self) -> None:
        if self._stop.wait(self.settings.engine.initial_delay_seconds):
            return
        while not self._stop.is_set():
            self.tick()
            if self._stop.wait(self.settings.engine.refresh_interval_seconds):
                return

    # -- cycles -------------------------------------------------------------

    def _submit(self, join_inflight: bool) -> concurrent.futures.Future | None:
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                if join_inflight:
                    return self._inflight
                self.skipped_cycles += 1
                logger.debug("%s", CycleSkipped(self.symbol))
                return None
            if self._cancel.is_set():
                return None
            self._inflight = self._worker.submit(self._run_cycle)
            return self._inflight

    def tick(self) -> concurrent.futures.Future | None:
        """Timer entry point. Returns the started cycle, or None if skipped."""
        return self._submit(join_inflight=False)

    def force_refresh(self, timeout: float | None = None) -> IntelligenceSnapshot | None:
        """Recompute now, or join the cycle already in flight.

        Returns the new snapshot, or whatever the cache holds if the cycle
        fails or does not finish within ``timeout`` seconds.
        """
        if timeout is None:
            timeout = self.settings.engine.force_refresh_timeout_seconds
        future = self._submit(join_inflight=True)
        if future is None:
            return self.cache.current()
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            logger.warning("force_refresh for %s timed out after %.1fs", self.symbol, timeout)
        except CycleFailed as e:
            logger.warning("force_refresh for %s failed: %s", self.symbol, e)
        except concurrent.futures.CancelledError:
            logger.debug("force_refresh for %s cancelled", self.symbol)
        return self.cache.current()

    def _run_cycle(self) -> IntelligenceSnapshot:
        try:
            snapshot = self.assembler.assemble(self.symbol, self.cache.latest, self._cancel)
            if self._cancel.is_set():
                raise CycleFailed(self.symbol, "cancelled before publication")
        except CycleFailed as e:
            self.failed_cycles += 1
            logger.warning("Cycle for %s abandoned, keeping previous snapshot: %s", self.symbol, e)
            raise
        except Exception as e:
            self.failed_cycles += 1
            logger.exception("Cycle for %s failed", self.symbol)
            raise CycleFailed(self.symbol, f"{type(e).__name__}: {e}") from e

        if not self.cache.publish(snapshot):
            raise CycleFailed(self.symbol, "publication rejected (non-increasing timestamp)")

        self.completed_cycles += 1
        score = snapshot.unified_score
        logger.info(
            "Published %s snapshot: %d/%d signals, score %+.1f (%s), quality %s",
            self.symbol,
            snapshot.available_count,
            score.total_signals if score else len(SignalName),
            score.score if score else 0.0,
            score.direction if score else "n/a",
            snapshot.quality,
        )
        return snapshot
