"""Rule-based cross-asset macro classification.

Rules are declarative: each is a list of (asset, op, value) comparisons on
the proxy's day change percent, evaluated in order; the first rule whose
conditions all hold wins. A condition on a missing quote never holds.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from market_intelligence.config import MacroCondition, MacroRule, MacroSettings
from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.models.macro import (
    BondEquityRelation,
    DollarPressure,
    MacroRegime,
    MacroResult,
)
from market_intelligence.models.market import MacroQuote


def _holds(cond: MacroCondition, changes: Mapping[str, float]) -> bool:
    value = changes.get(cond.asset)
    if value is None:
        return False
    if cond.op == "gt":
        return value > cond.value
    if cond.op == "lt":
        return value < cond.value
    raise ValueError(f"Unknown macro condition op: {cond.op!r}")


def evaluate_rules(
    rules: Sequence[MacroRule],
    changes: Mapping[str, float],
    context: Mapping[str, str] | None = None,
    default: str = "mixed",
) -> str:
    """Tag of the first matching rule, or ``default``."""
    context = context or {}
    for rule in rules:
        if any(context.get(k) != v for k, v in rule.requires.items()):
            continue
        if all(_holds(c, changes) for c in rule.when):
            return rule.tag
    return default


def compute_macro(
    quotes: Mapping[str, MacroQuote],
    cfg: MacroSettings,
) -> MacroResult:
    """Classify the macro backdrop from proxy quotes keyed by symbol.

    Raises:
        DataUnavailable: if the equity proxy quote is missing.
    """
    by_role: dict[str, MacroQuote] = {}
    missing: list[str] = []
    for role, symbol in cfg.proxies.items():
        quote = quotes.get(symbol)
        if quote is None:
            missing.append(role)
        else:
            by_role[role] = quote

    if "equity" not in by_role:
        raise DataUnavailable("macro", cfg.proxies.get("equity", "equity"), "equity proxy quote missing")

    changes = {role: q.change_pct for role, q in by_role.items()}
    relation = evaluate_rules(cfg.relation_rules, changes, default=cfg.default_relation)
    dollar = evaluate_rules(cfg.dollar_rules, changes, default=cfg.default_dollar)
    regime = evaluate_rules(
        cfg.regime_rules,
        changes,
        context={"relation": relation, "dollar": dollar},
        default=cfg.default_regime,
    )

    return MacroResult(
        quotes=tuple(by_role.items()),
        bond_equity_relation=BondEquityRelation(relation),
        dollar_pressure=DollarPressure(dollar),
        regime=MacroRegime(regime),
        missing_roles=missing,
    )
