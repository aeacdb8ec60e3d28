"""Typed exceptions for the data layer and the compute cycle."""

from market_intelligence.models.outcome import ReasonCode


class IntelligenceError(Exception):
    """Base class for engine errors."""


class DataUnavailable(IntelligenceError):
    """Provider timeout, error, or empty/partial response."""

    def __init__(
        self,
        source: str,
        symbol: str,
        message: str,
        reason: ReasonCode = ReasonCode.DATA_UNAVAILABLE,
    ) -> None:
        self.source = source
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"[{source}] {symbol}: {message}")


class ComputationDegraded(IntelligenceError):
    """Inputs were present but too thin to produce a confident result."""

    reason = ReasonCode.INSUFFICIENT_DATA

    def __init__(self, signal: str, symbol: str, message: str) -> None:
        self.signal = signal
        self.symbol = symbol
        super().__init__(f"[{signal}] {symbol}: {message}")


class StaleSnapshot(IntelligenceError):
    """The held snapshot is older than the freshness threshold."""

    def __init__(self, symbol: str, age_seconds: float, threshold_seconds: float) -> None:
        self.symbol = symbol
        self.age_seconds = age_seconds
        self.threshold_seconds = threshold_seconds
        super().__init__(
            f"{symbol}: snapshot age {age_seconds:.0f}s exceeds {threshold_seconds:.0f}s"
        )


class CycleSkipped(IntelligenceError):
    """A timer tick arrived while a compute cycle was still in flight."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"{symbol}: compute cycle already in flight, tick skipped")


class CycleFailed(IntelligenceError):
    """The whole cycle was abandoned (spot price unavailable, or cancelled)."""

    def __init__(self, symbol: str, message: str) -> None:
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")
