"""SnapshotAssembler: one compute cycle from fetch to an unpublished snapshot."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from market_intelligence.config import Settings
from market_intelligence.data.exceptions import CycleFailed
from market_intelligence.data.fetcher import MarketDataFetcher
from market_intelligence.features.scoring import compute_unified_score
from market_intelligence.models.outcome import (
    Available,
    ReasonCode,
    SignalName,
    SignalOutcome,
    Unavailable,
)
from market_intelligence.models.snapshot import IntelligenceSnapshot, SnapshotQuality
from market_intelligence.service.signals import SignalComputer, default_computers

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


def snapshot_quality(outcomes: dict[SignalName, SignalOutcome]) -> SnapshotQuality:
    complete = all(
        isinstance(o, Available) and not o.degraded for o in outcomes.values()
    ) and len(outcomes) == len(SignalName)
    return SnapshotQuality.COMPLETE if complete else SnapshotQuality.PARTIAL


class SnapshotAssembler:
    """Fetch inputs, fan out the computers, fuse, and stamp the snapshot."""

    def __init__(
        self,
        fetcher: MarketDataFetcher,
        settings: Settings,
        computers: list[SignalComputer] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.settings = settings
        self.computers = computers if computers is not None else default_computers()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, min(settings.engine.max_workers, len(self.computers))),
            thread_name_prefix="intel-signal",
        )

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
        self.fetcher.close()

    def compute_outcomes(
        self,
        inputs,
        cancel: threading.Event | None = None,
    ) -> dict[SignalName, SignalOutcome]:
        futures = {
            c.name: self._pool.submit(c.run, inputs, self.settings, cancel)
            for c in self.computers
        }
        outcomes: dict[SignalName, SignalOutcome] = {}
        for name in SignalName:
            future = futures.get(name)
            if future is None:
                outcomes[name] = Unavailable(
                    reason=ReasonCode.DATA_UNAVAILABLE, detail="no computer registered",
                )
                continue
            outcomes[name] = future.result()
        return outcomes

    def assemble(
        self,
        symbol: str,
        previous: IntelligenceSnapshot | None = None,
        cancel: threading.Event | None = None,
    ) -> IntelligenceSnapshot:
        """Run one full cycle for ``symbol``.

        Raises:
            CycleFailed: if spot is unavailable or the cycle was cancelled.
        """
        inputs = self.fetcher.fetch(symbol)
        if cancel is not None and cancel.is_set():
            raise CycleFailed(symbol, "cancelled before computing signals")

        outcomes = self.compute_outcomes(inputs, cancel)
        if cancel is not None and cancel.is_set():
            raise CycleFailed(symbol, "cancelled before publication")

        score = compute_unified_score(outcomes, self.settings, symbol)
        logger.debug(
            "Assembled %s: %d unavailable, %d degraded",
            symbol,
            sum(isinstance(o, Unavailable) for o in outcomes.values()),
            sum(isinstance(o, Available) and o.degraded for o in outcomes.values()),
        )

        timestamp = self._clock()
        if previous is not None and timestamp <= previous.timestamp:
            timestamp = previous.timestamp + _TICK

        fields = {
            name.value: outcome.value
            for name, outcome in outcomes.items()
            if isinstance(outcome, Available)
        }
        return IntelligenceSnapshot(
            symbol=symbol,
            timestamp=timestamp,
            as_of=inputs.as_of,
            spot_price=inputs.spot,
            market_open=inputs.market_open,
            unified_score=score,
            quality=snapshot_quality(outcomes),
            unavailable=tuple((n, o) for n, o in outcomes.items() if isinstance(o, Unavailable)),
            degraded=tuple(n for n, o in outcomes.items() if isinstance(o, Available) and o.degraded),
            **fields,
        )
