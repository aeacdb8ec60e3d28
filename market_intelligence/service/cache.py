"""SnapshotCache: the single published snapshot for one symbol."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

from market_intelligence.data.exceptions import StaleSnapshot
from market_intelligence.models.snapshot import IntelligenceSnapshot, SnapshotQuality

logger = logging.getLogger(__name__)


class SnapshotCache:
    """Holds one immutable snapshot reference, swapped atomically on publish.

    Readers never block: ``current()`` reads the reference once. A snapshot
    older than ``staleness_seconds`` is returned as a copy marked stale; the
    published object itself is never modified.
    """

    def __init__(
        self,
        symbol: str,
        staleness_seconds: float,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.symbol = symbol
        self.staleness_seconds = staleness_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._snapshot: IntelligenceSnapshot | None = None
        self._publish_lock = threading.Lock()

    @property
    def latest(self) -> IntelligenceSnapshot | None:
        """The published snapshot as-is, without staleness marking."""
        return self._snapshot

    def is_stale(self, now: datetime | None = None) -> bool:
        snap = self._snapshot
        if snap is None:
            return False
        return snap.age_seconds(now or self._clock()) > self.staleness_seconds

    def current(self, now: datetime | None = None) -> IntelligenceSnapshot | None:
        snap = self._snapshot
        if snap is None:
            return None
        if snap.age_seconds(now or self._clock()) > self.staleness_seconds:
            return snap.model_copy(update={"quality": SnapshotQuality.STALE})
        return snap

    def require_fresh(self, now: datetime | None = None) -> IntelligenceSnapshot | None:
        """Like ``current()`` but raises instead of returning a stale copy."""
        now = now or self._clock()
        snap = self._snapshot
        if snap is not None and snap.age_seconds(now) > self.staleness_seconds:
            raise StaleSnapshot(self.symbol, snap.age_seconds(now), self.staleness_seconds)
        return snap

    def publish(self, snapshot: IntelligenceSnapshot) -> bool:
        """Swap in ``snapshot``. Rejected unless its timestamp is strictly newer."""
        with self._publish_lock:
            held = self._snapshot
            if held is not None and snapshot.timestamp <= held.timestamp:
                logger.warning(
                    "Rejected %s snapshot stamped %s (held %s)",
                    self.symbol, snapshot.timestamp.isoformat(), held.timestamp.isoformat(),
                )
                return False
            self._snapshot = snapshot
            return True
