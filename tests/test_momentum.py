"""Tests for indicator helpers and the momentum classifier."""

import pandas as pd
import pytest

from conftest import make_closes
from market_intelligence.config import MomentumSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.features.momentum import compute_momentum, ema_alignment, min_history
from market_intelligence.features.technicals import compute_ema, compute_rsi, normalized_slope
from market_intelligence.models.intraday import VWAPPosition
from market_intelligence.models.momentum import EMAAlignment, MomentumRegime


def _zigzag(n: int = 60, start: float = 100.0, up: float = 1.0, down: float = -0.6) -> list[float]:
    """Alternating moves: a trend with pullbacks, RSI away from the extremes."""
    closes = [start]
    for i in range(1, n):
        closes.append(closes[-1] + (up if i % 2 else down))
    return closes


@pytest.fixture
def cfg() -> MomentumSettings:
    return MomentumSettings()


class TestTechnicals:
    def test_rsi_all_gains_is_100(self) -> None:
        rsi = compute_rsi(pd.Series(make_closes(30)), 14)
        assert rsi.iloc[-1] == 100.0

    def test_rsi_flat_is_50(self) -> None:
        rsi = compute_rsi(pd.Series([100.0] * 30), 14)
        assert rsi.iloc[-1] == 50.0

    def test_rsi_zigzag_between_bands(self) -> None:
        rsi = compute_rsi(pd.Series(_zigzag()), 14).iloc[-1]
        assert 55 < rsi < 72

    def test_ema_tracks_trend(self) -> None:
        close = pd.Series(make_closes(60))
        assert compute_ema(close, 9).iloc[-1] > compute_ema(close, 21).iloc[-1]

    def test_slope_percent_per_bar(self) -> None:
        close = pd.Series([100.0, 101.0, 102.0, 103.0, 104.0])
        assert normalized_slope(close, 5) == pytest.approx(1.0 / 102.0 * 100)

    def test_alignment_tolerance(self) -> None:
        assert ema_alignment(100.05, 100.0, 0.001) == EMAAlignment.NEUTRAL
        assert ema_alignment(100.2, 100.0, 0.001) == EMAAlignment.BULLISH
        assert ema_alignment(99.8, 100.0, 0.001) == EMAAlignment.BEARISH


class TestComputeMomentum:
    def test_bullish_momentum(self, cfg: MomentumSettings) -> None:
        result = compute_momentum(_zigzag(), cfg)
        assert result.regime == MomentumRegime.MOMENTUM_BULLISH
        assert result.agreeing_signals == 3
        assert result.ema_alignment == EMAAlignment.BULLISH
        assert result.slope_5d > cfg.slope_threshold
        assert result.confidence == cfg.confidence_cap

    def test_bearish_momentum(self, cfg: MomentumSettings) -> None:
        result = compute_momentum(_zigzag(start=200.0, up=-1.0, down=0.6), cfg)
        assert result.regime == MomentumRegime.MOMENTUM_BEARISH
        assert result.rsi < cfg.rsi_bear
        assert result.ema_alignment == EMAAlignment.BEARISH

    def test_overbought_is_mean_reversion(self, cfg: MomentumSettings) -> None:
        result = compute_momentum(make_closes(60), cfg)
        assert result.regime == MomentumRegime.MEAN_REVERSION
        assert result.rsi > cfg.rsi_overbought
        assert "overbought" in result.trading_advice

    def test_vwap_extension_is_mean_reversion(self, cfg: MomentumSettings) -> None:
        result = compute_momentum(_zigzag(), cfg, vwap_position=VWAPPosition.ABOVE_UPPER2)
        assert result.regime == MomentumRegime.MEAN_REVERSION
        assert result.extended_from_vwap

    def test_flat_is_mixed(self, cfg: MomentumSettings) -> None:
        result = compute_momentum([100.0] * 40, cfg)
        assert result.regime == MomentumRegime.MIXED
        assert result.agreeing_signals == 0
        assert result.confidence == 0.0

    def test_short_history_raises(self, cfg: MomentumSettings) -> None:
        assert min_history(cfg) == 25
        with pytest.raises(DataUnavailable, match="closes, need 25"):
            compute_momentum(make_closes(10), cfg)
