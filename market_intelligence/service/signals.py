"""SignalComputer contract and the nine concrete computers.

Each computer reads the cycle's frozen ``MarketInputs`` and produces one
result model. ``run()`` wraps ``compute()`` so a computer always returns an
``Available`` or ``Unavailable`` outcome and never raises.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from pydantic import BaseModel

from market_intelligence.config import Settings
from market_intelligence.data.exceptions import ComputationDegraded, DataUnavailable
from market_intelligence.data.fetcher import InputSource, MarketInputs
from market_intelligence.features.expected_move import compute_expected_move
from market_intelligence.features.gex import compute_gex
from market_intelligence.features.iv_skew import compute_iv_skew
from market_intelligence.features.macro import compute_macro
from market_intelligence.features.momentum import compute_momentum
from market_intelligence.features.pcr import compute_pcr
from market_intelligence.features.vix_regime import compute_vix_regime
from market_intelligence.features.volume_delta import compute_volume_delta
from market_intelligence.features.vwap import compute_vwap_bands
from market_intelligence.models.intraday import VWAPPosition
from market_intelligence.models.macro import MacroResult
from market_intelligence.models.momentum import MomentumResult
from market_intelligence.models.options import IVSkewResult, PCRResult
from market_intelligence.models.outcome import (
    Available,
    ReasonCode,
    SignalName,
    SignalOutcome,
    Unavailable,
)
from market_intelligence.models.volatility import TermSource, VIXRegimeResult

logger = logging.getLogger(__name__)


def _require(inputs: MarketInputs, source: InputSource, value):
    """Return ``value`` or raise with the reason its fetch failed."""
    if value is None:
        missing = inputs.missing(source)
        raise DataUnavailable(str(source), inputs.symbol, missing.detail, reason=missing.reason)
    return value


class SignalComputer(ABC):
    """One independent signal. Implementations must not share state."""

    name: SignalName

    @abstractmethod
    def compute(self, inputs: MarketInputs, settings: Settings) -> BaseModel:
        """Compute the result. Raise ``DataUnavailable`` when inputs are missing."""
        ...

    def fallback_notes(self, value: BaseModel, inputs: MarketInputs, settings: Settings) -> list[str]:
        """Notes on fallback paths taken; any note marks the result degraded."""
        return []

    def run(
        self,
        inputs: MarketInputs,
        settings: Settings,
        cancel: threading.Event | None = None,
    ) -> SignalOutcome:
        if cancel is not None and cancel.is_set():
            return Unavailable(reason=ReasonCode.CANCELLED, detail="cycle cancelled")
        try:
            value = self.compute(inputs, settings)
        except (DataUnavailable, ComputationDegraded) as e:
            logger.debug("%s unavailable for %s: %s", self.name, inputs.symbol, e)
            return Unavailable(reason=e.reason, detail=str(e))
        except Exception as e:
            logger.exception("%s computation failed for %s", self.name, inputs.symbol)
            return Unavailable(reason=ReasonCode.COMPUTATION_FAILED, detail=f"{type(e).__name__}: {e}")

        notes = self.fallback_notes(value, inputs, settings)
        if notes:
            logger.debug("%s degraded for %s: %s", self.name, inputs.symbol, "; ".join(notes))
        return Available(value=value, degraded=bool(notes), notes=tuple(notes))


class PCRComputer(SignalComputer):
    name = SignalName.PCR

    def compute(self, inputs: MarketInputs, settings: Settings) -> PCRResult:
        chain = _require(inputs, InputSource.CHAIN, inputs.chain)
        return compute_pcr(chain, settings.pcr, inputs.chain_symbol or inputs.symbol)

    def fallback_notes(self, value: PCRResult, inputs, settings) -> list[str]:
        if value.overall_pcr is None:
            return [f"overall PCR undefined ({value.reason}), interpretation held neutral"]
        return []


class GEXComputer(SignalComputer):
    name = SignalName.GEX

    def compute(self, inputs: MarketInputs, settings: Settings):
        chain = _require(inputs, InputSource.CHAIN, inputs.chain)
        return compute_gex(chain, inputs.spot, settings.gex, inputs.symbol)


class IVSkewComputer(SignalComputer):
    name = SignalName.IV_SKEW

    def compute(self, inputs: MarketInputs, settings: Settings) -> IVSkewResult:
        chain = _require(inputs, InputSource.CHAIN, inputs.chain)
        return compute_iv_skew(chain, inputs.spot, settings.skew, inputs.symbol)

    def fallback_notes(self, value: IVSkewResult, inputs, settings) -> list[str]:
        notes = []
        if not value.put_bracketed:
            notes.append("put 25-delta IV taken from nearest delta")
        if not value.call_bracketed:
            notes.append("call 25-delta IV taken from nearest delta")
        return notes


class VIXRegimeComputer(SignalComputer):
    name = SignalName.VIX_REGIME

    def compute(self, inputs: MarketInputs, settings: Settings) -> VIXRegimeResult:
        history = _require(inputs, InputSource.VIX_HISTORY, inputs.vix_history)
        return compute_vix_regime(history, inputs.vix_term, settings.vix)

    def fallback_notes(self, value: VIXRegimeResult, inputs, settings) -> list[str]:
        if value.term_source == TermSource.AVERAGE:
            return [f"{settings.vix.term_symbol} unavailable, term structure from the 20-day average"]
        return []


class MacroComputer(SignalComputer):
    name = SignalName.MACRO

    def compute(self, inputs: MarketInputs, settings: Settings) -> MacroResult:
        if not inputs.macro_quotes:
            _require(inputs, InputSource.MACRO, None)
        return compute_macro(inputs.macro_quotes, settings.macro)

    def fallback_notes(self, value: MacroResult, inputs, settings) -> list[str]:
        if value.missing_roles:
            return [f"missing proxies: {', '.join(value.missing_roles)}"]
        return []


class _IntradayComputer(SignalComputer):
    def bars(self, inputs: MarketInputs, settings: Settings):
        if settings.intraday.require_market_open and not inputs.market_open:
            raise DataUnavailable(
                str(self.name), inputs.symbol, "regular session closed", reason=ReasonCode.MARKET_CLOSED,
            )
        return _require(inputs, InputSource.BARS, inputs.bars)


class VWAPComputer(_IntradayComputer):
    name = SignalName.VWAP

    def compute(self, inputs: MarketInputs, settings: Settings):
        bars = self.bars(inputs, settings)
        return compute_vwap_bands(bars, settings.intraday, inputs.spot, inputs.symbol)


class VolumeDeltaComputer(_IntradayComputer):
    name = SignalName.VOLUME_DELTA

    def compute(self, inputs: MarketInputs, settings: Settings):
        bars = self.bars(inputs, settings)
        return compute_volume_delta(bars, settings.intraday, inputs.symbol)


class ExpectedMoveComputer(SignalComputer):
    name = SignalName.EXPECTED_MOVE

    def compute(self, inputs: MarketInputs, settings: Settings):
        chain = _require(inputs, InputSource.CHAIN, inputs.chain)
        return compute_expected_move(chain, inputs.spot, settings.expected_move, inputs.symbol)


class MomentumComputer(SignalComputer):
    """Daily-close momentum; reads the session's VWAP bands only for the extension check."""

    name = SignalName.MOMENTUM

    def _vwap_position(self, inputs: MarketInputs, settings: Settings) -> VWAPPosition | None:
        if not inputs.bars:
            return None
        try:
            return compute_vwap_bands(inputs.bars, settings.intraday, inputs.spot, inputs.symbol).position
        except DataUnavailable:
            return None

    def compute(self, inputs: MarketInputs, settings: Settings) -> MomentumResult:
        closes = _require(inputs, InputSource.DAILY_CLOSES, inputs.daily_closes)
        try:
            return compute_momentum(
                closes, settings.momentum, self._vwap_position(inputs, settings), inputs.symbol,
            )
        except DataUnavailable as e:
            raise ComputationDegraded("momentum", inputs.symbol, str(e)) from e


def default_computers() -> list[SignalComputer]:
    return [
        PCRComputer(),
        GEXComputer(),
        IVSkewComputer(),
        VIXRegimeComputer(),
        MacroComputer(),
        VWAPComputer(),
        VolumeDeltaComputer(),
        ExpectedMoveComputer(),
        MomentumComputer(),
    ]
