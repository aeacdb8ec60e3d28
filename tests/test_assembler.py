"""Tests for the signal computers and snapshot assembly."""

import threading
from datetime import timedelta

import pytest

from conftest import WEEKEND_NOW, FakeClock, FakeProvider, make_chain, make_closes
from market_intelligence.config import Settings
from market_intelligence.data.exceptions import CycleFailed, DataUnavailable
from market_intelligence.data.fetcher import MarketDataFetcher
from market_intelligence.models.outcome import Available, ReasonCode, SignalName, Unavailable
from market_intelligence.models.snapshot import SnapshotQuality
from market_intelligence.service.assembler import SnapshotAssembler, snapshot_quality
from market_intelligence.service.signals import (
    MomentumComputer,
    PCRComputer,
    SignalComputer,
    VIXRegimeComputer,
    default_computers,
)


class ExplodingComputer(SignalComputer):
    name = SignalName.MACRO

    def compute(self, inputs, settings):
        raise ZeroDivisionError("bad input")


def _assembler(provider: FakeProvider, settings: Settings, clock: FakeClock, computers=None) -> SnapshotAssembler:
    fetcher = MarketDataFetcher(provider, settings, clock=clock)
    return SnapshotAssembler(fetcher, settings, computers=computers, clock=clock)


@pytest.fixture
def assembler(provider: FakeProvider, settings: Settings, clock: FakeClock):
    a = _assembler(provider, settings, clock)
    yield a
    a.close()


@pytest.fixture
def inputs(provider: FakeProvider, settings: Settings, clock: FakeClock):
    fetcher = MarketDataFetcher(provider, settings, clock=clock)
    try:
        yield fetcher.fetch("SPY")
    finally:
        fetcher.close()


class TestComputers:
    def test_default_set_covers_every_signal(self) -> None:
        assert {c.name for c in default_computers()} == set(SignalName)

    def test_missing_chain_carries_fetch_reason(self, inputs, settings: Settings) -> None:
        degraded_inputs = inputs.model_copy(update={"chain": None, "errors": {}})
        outcome = PCRComputer().run(degraded_inputs, settings)
        assert isinstance(outcome, Unavailable)
        assert outcome.reason == ReasonCode.DATA_UNAVAILABLE

    def test_undefined_pcr_is_degraded(self, inputs, settings: Settings) -> None:
        no_calls = inputs.model_copy(update={"chain": make_chain(call_volume=0)})
        outcome = PCRComputer().run(no_calls, settings)
        assert isinstance(outcome, Available)
        assert outcome.degraded
        assert outcome.value.overall_pcr is None

    def test_vix_without_term_quote_is_degraded(self, inputs, settings: Settings) -> None:
        outcome = VIXRegimeComputer().run(inputs.model_copy(update={"vix_term": None}), settings)
        assert isinstance(outcome, Available)
        assert outcome.degraded
        assert "20-day average" in outcome.notes[0]

    def test_short_history_is_insufficient_data(self, inputs, settings: Settings) -> None:
        outcome = MomentumComputer().run(inputs.model_copy(update={"daily_closes": make_closes(10)}), settings)
        assert isinstance(outcome, Unavailable)
        assert outcome.reason == ReasonCode.INSUFFICIENT_DATA

    def test_unexpected_error_is_contained(self, inputs, settings: Settings) -> None:
        outcome = ExplodingComputer().run(inputs, settings)
        assert isinstance(outcome, Unavailable)
        assert outcome.reason == ReasonCode.COMPUTATION_FAILED
        assert "ZeroDivisionError" in outcome.detail

    def test_cancelled_before_start(self, inputs, settings: Settings) -> None:
        cancel = threading.Event()
        cancel.set()
        outcome = PCRComputer().run(inputs, settings, cancel)
        assert outcome == Unavailable(reason=ReasonCode.CANCELLED, detail="cycle cancelled")


class TestQuality:
    def test_complete_requires_all_clean(self) -> None:
        outcomes = {name: Available(value=1) for name in SignalName}
        assert snapshot_quality(outcomes) == SnapshotQuality.COMPLETE
        outcomes[SignalName.GEX] = Available(value=1, degraded=True)
        assert snapshot_quality(outcomes) == SnapshotQuality.PARTIAL

    def test_missing_signal_is_partial(self) -> None:
        outcomes = {name: Available(value=1) for name in SignalName}
        outcomes[SignalName.VWAP] = Unavailable(reason=ReasonCode.TIMEOUT)
        assert snapshot_quality(outcomes) == SnapshotQuality.PARTIAL


class TestAssemble:
    def test_complete_snapshot(self, assembler: SnapshotAssembler, clock: FakeClock) -> None:
        snap = assembler.assemble("SPY")
        assert snap.quality == SnapshotQuality.COMPLETE
        assert snap.available_count == len(SignalName)
        assert snap.unavailable == ()
        assert snap.timestamp == clock()
        assert snap.spot_price == 500.0
        assert snap.unified_score is not None
        assert snap.unified_score.available_signals == len(SignalName)

    def test_weekend_drops_intraday_signals(self, provider: FakeProvider, settings: Settings) -> None:
        a = _assembler(provider, settings, FakeClock(WEEKEND_NOW))
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        assert snap.quality == SnapshotQuality.PARTIAL
        assert not snap.market_open
        for name in (SignalName.VWAP, SignalName.VOLUME_DELTA):
            assert snap.missing(name).reason == ReasonCode.MARKET_CLOSED
        assert snap.momentum is not None
        assert not snap.momentum.extended_from_vwap

    def test_degraded_signal_listed(self, settings: Settings, clock: FakeClock) -> None:
        a = _assembler(FakeProvider(vix_term=None), settings, clock)
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        assert snap.degraded == (SignalName.VIX_REGIME,)
        assert snap.quality == SnapshotQuality.PARTIAL
        assert snap.vix_regime is not None

    def test_missing_chain_drops_chain_signals(self, provider: FakeProvider, settings: Settings, clock: FakeClock) -> None:
        provider.failures["fetch_chain"] = DataUnavailable("fake", "SPY", "no chain")
        a = _assembler(provider, settings, clock)
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        chain_signals = {SignalName.PCR, SignalName.GEX, SignalName.IV_SKEW, SignalName.EXPECTED_MOVE}
        assert set(snap.unavailable_signals) == chain_signals
        assert snap.unified_score.available_signals == len(SignalName) - len(chain_signals)

    def test_failing_computer_does_not_sink_cycle(self, provider: FakeProvider, settings: Settings, clock: FakeClock) -> None:
        computers = [c for c in default_computers() if c.name != SignalName.MACRO] + [ExplodingComputer()]
        a = _assembler(provider, settings, clock, computers)
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        assert snap.macro is None
        assert snap.missing(SignalName.MACRO).reason == ReasonCode.COMPUTATION_FAILED
        assert snap.available_count == len(SignalName) - 1

    def test_spot_failure_raises(self, assembler: SnapshotAssembler, provider: FakeProvider) -> None:
        provider.failures["fetch_spot"] = DataUnavailable("fake", "SPY", "down")
        with pytest.raises(CycleFailed):
            assembler.assemble("SPY")

    def test_cancelled_cycle_raises(self, assembler: SnapshotAssembler) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CycleFailed, match="cancelled"):
            assembler.assemble("SPY", cancel=cancel)

    def test_timestamps_strictly_increase_on_frozen_clock(self, assembler: SnapshotAssembler) -> None:
        first = assembler.assemble("SPY")
        second = assembler.assemble("SPY", previous=first)
        assert second.timestamp == first.timestamp + timedelta(microseconds=1)
        assert second.as_of == first.as_of

    def test_snapshot_outcomes_round_trip(self, settings: Settings, clock: FakeClock) -> None:
        a = _assembler(FakeProvider(vix_term=None), settings, clock)
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        outcomes = snap.outcomes()
        assert outcomes[SignalName.VIX_REGIME].degraded
        assert isinstance(outcomes[SignalName.PCR], Available)

    def test_published_snapshot_cannot_be_mutated(self, provider: FakeProvider, settings: Settings, clock: FakeClock) -> None:
        provider.failures["fetch_chain"] = DataUnavailable("fake", "SPY", "no chain")
        a = _assembler(provider, settings, clock)
        try:
            snap = a.assemble("SPY")
        finally:
            a.close()
        assert isinstance(snap.unavailable, tuple)
        assert isinstance(snap.degraded, tuple)
        with pytest.raises(AttributeError):
            snap.degraded.append(SignalName.GEX)
        with pytest.raises(TypeError):
            snap.unavailable[0] = (SignalName.GEX, Unavailable(reason=ReasonCode.TIMEOUT))
        # outcomes() hands out a fresh mapping each call
        outcomes = snap.outcomes()
        outcomes.pop(SignalName.PCR)
        assert SignalName.PCR in snap.outcomes()
        assert snap.missing(SignalName.PCR).reason == ReasonCode.DATA_UNAVAILABLE
        assert snap.missing(SignalName.MOMENTUM) is None
