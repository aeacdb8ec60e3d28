"""Pydantic models for the cross-asset macro classifier."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from market_intelligence.models.market import MacroQuote


class BondEquityRelation(StrEnum):
    FLIGHT_TO_SAFETY = "flight_to_safety"
    RISK_ON = "risk_on"
    MIXED = "mixed"


class DollarPressure(StrEnum):
    HEADWIND = "headwind"
    TAILWIND = "tailwind"
    NEUTRAL = "neutral"


class MacroRegime(StrEnum):
    RISK_ON = "risk_on"
    RISK_OFF = "risk_off"
    MIXED = "mixed"


class MacroResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    quotes: tuple[tuple[str, MacroQuote], ...]   # (role, quote); role is equity/bond/dollar/gold
    bond_equity_relation: BondEquityRelation
    dollar_pressure: DollarPressure
    regime: MacroRegime
    missing_roles: tuple[str, ...] = ()

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(role for role, _ in self.quotes)

    def quote(self, role: str) -> MacroQuote | None:
        return next((q for r, q in self.quotes if r == role), None)
