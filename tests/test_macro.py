"""Tests for the rule-based macro classifier."""

import pytest

from conftest import make_macro_quotes
from market_intelligence.config import MacroCondition, MacroRule, MacroSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.features.macro import compute_macro, evaluate_rules
from market_intelligence.models.macro import BondEquityRelation, DollarPressure, MacroRegime


@pytest.fixture
def cfg() -> MacroSettings:
    return MacroSettings()


class TestEvaluateRules:
    def test_first_match_wins(self) -> None:
        rules = [
            MacroRule(tag="a", when=[MacroCondition(asset="x", op="gt", value=1.0)]),
            MacroRule(tag="b", when=[MacroCondition(asset="x", op="gt", value=0.0)]),
        ]
        assert evaluate_rules(rules, {"x": 2.0}) == "a"
        assert evaluate_rules(rules, {"x": 0.5}) == "b"
        assert evaluate_rules(rules, {"x": -1.0}, default="none") == "none"

    def test_missing_asset_never_holds(self) -> None:
        rules = [MacroRule(tag="a", when=[MacroCondition(asset="x", op="lt", value=5.0)])]
        assert evaluate_rules(rules, {}, default="d") == "d"

    def test_requires_context(self) -> None:
        rules = [MacroRule(tag="a", requires={"relation": "risk_on"})]
        assert evaluate_rules(rules, {}, context={"relation": "risk_on"}) == "a"
        assert evaluate_rules(rules, {}, context={"relation": "mixed"}) == "mixed"

    def test_unknown_op_raises(self) -> None:
        rules = [MacroRule(tag="a", when=[MacroCondition(asset="x", op="eq", value=1.0)])]
        with pytest.raises(ValueError, match="Unknown macro condition op"):
            evaluate_rules(rules, {"x": 1.0})


class TestComputeMacro:
    def test_risk_on(self, cfg: MacroSettings) -> None:
        result = compute_macro(make_macro_quotes(equity=0.8, bond=-0.5), cfg)
        assert result.bond_equity_relation == BondEquityRelation.RISK_ON
        assert result.regime == MacroRegime.RISK_ON
        assert result.dollar_pressure == DollarPressure.NEUTRAL
        assert set(result.roles) == {"equity", "bond", "dollar", "gold"}

    def test_flight_to_safety(self, cfg: MacroSettings) -> None:
        result = compute_macro(make_macro_quotes(equity=-1.0, bond=0.6), cfg)
        assert result.bond_equity_relation == BondEquityRelation.FLIGHT_TO_SAFETY
        assert result.regime == MacroRegime.RISK_OFF

    def test_dollar_headwind_on_down_day(self, cfg: MacroSettings) -> None:
        result = compute_macro(make_macro_quotes(equity=-0.1, bond=0.0, dollar=0.5), cfg)
        assert result.dollar_pressure == DollarPressure.HEADWIND
        assert result.bond_equity_relation == BondEquityRelation.MIXED
        assert result.regime == MacroRegime.RISK_OFF

    def test_quiet_day_is_mixed(self, cfg: MacroSettings) -> None:
        result = compute_macro(make_macro_quotes(equity=0.1, bond=0.1, dollar=-0.4), cfg)
        assert result.regime == MacroRegime.MIXED
        assert result.dollar_pressure == DollarPressure.TAILWIND

    def test_missing_secondary_quotes(self, cfg: MacroSettings) -> None:
        quotes = make_macro_quotes(equity=0.8)
        del quotes["TLT"], quotes["GLD"]
        result = compute_macro(quotes, cfg)
        assert sorted(result.missing_roles) == ["bond", "gold"]
        # Without a bond quote the risk_on relation cannot hold.
        assert result.regime == MacroRegime.MIXED

    def test_missing_equity_raises(self, cfg: MacroSettings) -> None:
        quotes = make_macro_quotes()
        del quotes["SPY"]
        with pytest.raises(DataUnavailable, match="equity proxy"):
            compute_macro(quotes, cfg)
