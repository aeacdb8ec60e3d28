"""Market microstructure intelligence: dealer positioning, volatility, macro and intraday flow fused into one snapshot."""

# Config
from market_intelligence.config import Settings, get_settings, load_settings, reset_settings

# Models
from market_intelligence.models.market import IntradayBar, MacroQuote, OptionsChainEntry, OptionType
from market_intelligence.models.outcome import (
    Available,
    ReasonCode,
    SignalName,
    SignalOutcome,
    Unavailable,
)
from market_intelligence.models.score import SignalContribution, SignalDirection, UnifiedScoreResult
from market_intelligence.models.snapshot import IntelligenceSnapshot, LifecycleState, SnapshotQuality

# Errors
from market_intelligence.data.exceptions import (
    ComputationDegraded,
    CycleFailed,
    CycleSkipped,
    DataUnavailable,
    IntelligenceError,
    StaleSnapshot,
)

# Data
from market_intelligence.data.fetcher import MarketDataFetcher, MarketInputs
from market_intelligence.data.providers.base import MarketDataProvider

# Services
from market_intelligence.features.scoring import compute_unified_score
from market_intelligence.service.assembler import SnapshotAssembler
from market_intelligence.service.cache import SnapshotCache
from market_intelligence.service.engine import IntelligenceEngine
from market_intelligence.service.scheduler import RefreshScheduler
from market_intelligence.service.signals import SignalComputer, default_computers

__all__ = [
    "Available",
    "ComputationDegraded",
    "CycleFailed",
    "CycleSkipped",
    "DataUnavailable",
    "IntelligenceEngine",
    "IntelligenceError",
    "IntelligenceSnapshot",
    "IntradayBar",
    "LifecycleState",
    "MacroQuote",
    "MarketDataFetcher",
    "MarketDataProvider",
    "MarketInputs",
    "OptionType",
    "OptionsChainEntry",
    "ReasonCode",
    "RefreshScheduler",
    "Settings",
    "SignalComputer",
    "SignalContribution",
    "SignalDirection",
    "SignalName",
    "SignalOutcome",
    "SnapshotAssembler",
    "SnapshotCache",
    "SnapshotQuality",
    "StaleSnapshot",
    "Unavailable",
    "UnifiedScoreResult",
    "compute_unified_score",
    "default_computers",
    "get_settings",
    "load_settings",
    "reset_settings",
]
