"""Tests for 25-delta IV skew and the expected-move estimate."""

from datetime import date
import math

import numpy as np
import pytest

from conftest import make_chain
from market_intelligence.config import ExpectedMoveSettings, SkewSettings
from market_intelligence.data.exceptions import ComputationDegraded, DataUnavailable
from market_intelligence.features.chain import atm_iv, find_atm_strike, front_expiry
from market_intelligence.features.expected_move import compute_expected_move, expected_move_from_iv
from market_intelligence.features.iv_skew import (
    classify_skew,
    compute_iv_skew,
    interpolate_iv_at_delta,
)


class TestChainHelpers:
    def test_atm_strike_nearest(self) -> None:
        assert find_atm_strike([490.0, 495.0, 500.0, 505.0], 501.0) == 500.0

    def test_atm_iv_averages_call_and_put(self) -> None:
        chain = make_chain(base_iv=20.0)
        assert atm_iv(chain, 500.0) == (500.0, pytest.approx(20.0))

    def test_front_expiry_slices_nearest(self) -> None:
        near = make_chain(expiration=date(2026, 3, 6), base_iv=30.0)
        far = make_chain(expiration=date(2026, 4, 17), base_iv=15.0)
        front = front_expiry(far + near)
        assert {e.expiration for e in front} == {date(2026, 3, 6)}
        assert len(front) == len(near)


class TestInterpolation:
    def test_bracketed_linear(self) -> None:
        iv, ok = interpolate_iv_at_delta(np.array([0.2, 0.3]), np.array([30.0, 20.0]), 0.25)
        assert ok
        assert iv == pytest.approx(25.0)

    def test_unbracketed_uses_nearest(self) -> None:
        iv, ok = interpolate_iv_at_delta(np.array([0.4, 0.5]), np.array([22.0, 20.0]), 0.25)
        assert not ok
        assert iv == 22.0

    def test_buckets(self) -> None:
        buckets = SkewSettings().buckets
        assert classify_skew(12.0, buckets).label == "heavy_put_skew"
        assert classify_skew(7.0, buckets).label == "fear_skew"
        assert classify_skew(0.0, buckets).label == "normal"
        assert classify_skew(-2.0, buckets).label == "call_skew"


class TestComputeSkew:
    def test_normal_skew(self) -> None:
        # Put 25d between |delta| 0.18 (IV 26) and 0.26 (IV 24.5): 24.6875.
        # Call 25d between 0.18 (IV 22) and 0.26 (IV 21.5): 21.5625.
        result = compute_iv_skew(make_chain(), 500.0, SkewSettings())
        assert result.put_25d_iv == pytest.approx(24.6875)
        assert result.call_25d_iv == pytest.approx(21.5625)
        assert result.skew == pytest.approx(3.125)
        assert result.bucket == "normal"
        assert result.put_bracketed and result.call_bracketed
        assert result.atm_strike == 500.0
        assert result.skew_ratio == pytest.approx(24.6875 / 21.5625)

    def test_heavy_put_skew(self) -> None:
        result = compute_iv_skew(make_chain(put_slope=5.0), 500.0, SkewSettings())
        assert result.skew > 10
        assert result.bucket == "heavy_put_skew"
        assert "crash protection" in result.interpretation

    def test_narrow_chain_falls_back(self) -> None:
        result = compute_iv_skew(make_chain(strikes_around=1), 500.0, SkewSettings())
        assert not result.put_bracketed
        assert not result.call_bracketed

    def test_no_iv_raises(self) -> None:
        with pytest.raises(DataUnavailable):
            compute_iv_skew(make_chain(base_iv=0.0, put_slope=0.0, call_slope=0.0), 500.0, SkewSettings())

    def test_missing_deltas_degrades(self) -> None:
        chain = [e.model_copy(update={"delta": 0.0}) for e in make_chain()]
        with pytest.raises(ComputationDegraded, match="lacks put or call deltas"):
            compute_iv_skew(chain, 500.0, SkewSettings())


class TestExpectedMove:
    def test_formula(self) -> None:
        result = expected_move_from_iv(500.0, 20.0, ExpectedMoveSettings())
        assert result.daily_move == pytest.approx(500 * 0.2 * math.sqrt(1 / 252))
        assert result.weekly_move == pytest.approx(500 * 0.2 * math.sqrt(5 / 252))
        assert result.upper_target == pytest.approx(500 + result.daily_move)
        assert result.lower_target == pytest.approx(500 - result.daily_move)
        assert result.daily_move_pct == pytest.approx(result.daily_move / 5)

    def test_uses_front_expiry_atm_iv(self) -> None:
        near = make_chain(expiration=date(2026, 3, 6), base_iv=30.0)
        far = make_chain(expiration=date(2026, 4, 17), base_iv=15.0)
        result = compute_expected_move(far + near, 500.0, ExpectedMoveSettings())
        assert result.atm_iv == pytest.approx(30.0)

    def test_missing_iv_raises(self) -> None:
        chain = make_chain(base_iv=0.0, put_slope=0.0, call_slope=0.0)
        with pytest.raises(DataUnavailable, match="ATM implied volatility"):
            compute_expected_move(chain, 500.0, ExpectedMoveSettings())
