"""Central configuration: loaded from YAML, overridable per-field."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator


# --- Settings models ---


class EngineSettings(BaseModel):
    symbols: list[str] = Field(default_factory=lambda: ["SPY"])
    refresh_interval_seconds: float = 60.0
    staleness_multiplier: float = 2.0
    initial_delay_seconds: float = 10.0
    fetch_timeout_seconds: float = 10.0
    force_refresh_timeout_seconds: float = 30.0
    max_workers: int = 9
    # VIX, VIX term and macro quotes are the same for every symbol; reuse
    # them across cycles for this long.
    market_wide_ttl_seconds: float = 55.0
    # Symbols without a listed chain are analyzed through a proxy's chain,
    # rescaled to the underlying's price.
    option_proxies: dict[str, str] = Field(default_factory=lambda: {"SPX": "SPY"})
    chain_expirations: int = 3

    @property
    def staleness_seconds(self) -> float:
        return self.refresh_interval_seconds * self.staleness_multiplier

    @model_validator(mode="after")
    def _check(self) -> EngineSettings:
        if self.refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be > 0")
        if self.staleness_multiplier < 1:
            raise ValueError("staleness_multiplier must be >= 1")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if self.market_wide_ttl_seconds < 0:
            raise ValueError("market_wide_ttl_seconds must be >= 0")
        return self


class MarketHoursSettings(BaseModel):
    timezone: str = "America/New_York"
    market_open: str = "09:30"
    market_close: str = "16:00"


class PCRSettings(BaseModel):
    bullish_below: float = 0.7
    bearish_at_or_above: float = 1.5
    min_strike_volume: int = 100

    @model_validator(mode="after")
    def _check(self) -> PCRSettings:
        if self.bullish_below >= self.bearish_at_or_above:
            raise ValueError("pcr.bullish_below must be < pcr.bearish_at_or_above")
        return self


class GEXSettings(BaseModel):
    move_fraction: float = 0.01
    top_levels: int = 5
    strong_fraction: float = 0.5


class SkewBucket(BaseModel):
    """One row of the skew interpretation table. ``above=None`` is the catch-all."""

    label: str
    above: float | None
    interpretation: str
    bias: float = 0.0


class SkewSettings(BaseModel):
    target_delta: float = 0.25
    buckets: list[SkewBucket] = Field(default_factory=lambda: [
        SkewBucket(
            label="heavy_put_skew", above=10.0, bias=-0.8,
            interpretation="Heavy put skew: institutions buying crash protection, fear elevated",
        ),
        SkewBucket(
            label="fear_skew", above=5.0, bias=-0.5,
            interpretation="Fear skew: elevated demand for downside puts",
        ),
        SkewBucket(
            label="normal", above=-2.0, bias=0.0,
            interpretation="Normal skew: standard demand for downside protection",
        ),
        SkewBucket(
            label="call_skew", above=None, bias=0.3,
            interpretation="Call skew: unusual upside speculation, often precedes tops",
        ),
    ])

    @model_validator(mode="after")
    def _check(self) -> SkewSettings:
        cutoffs = [b.above for b in self.buckets if b.above is not None]
        if cutoffs != sorted(cutoffs, reverse=True):
            raise ValueError("skew.buckets must be ordered by descending 'above'")
        if not self.buckets or self.buckets[-1].above is not None:
            raise ValueError("skew.buckets must end with a catch-all bucket (above: null)")
        return self


class VIXSettings(BaseModel):
    symbol: str = "^VIX"
    term_symbol: str = "^VIX3M"
    complacent_below: float = 15.0
    normal_below: float = 20.0
    elevated_below: float = 30.0
    percentile_window: int = 252
    average_window: int = 20
    term_flat_band: float = 1.0
    # Fallback proxy (20d average minus spot) is noisier, so its band is wider.
    average_flat_band: float = 2.0
    regime_bias: dict[str, float] = Field(default_factory=lambda: {
        "complacent": -0.3,
        "normal": 0.1,
        "elevated": -0.3,
        "panic": 0.6,
    })
    term_bias: dict[str, float] = Field(default_factory=lambda: {
        "contango": 0.1,
        "flat": 0.0,
        "backwardation": -0.3,
    })

    @model_validator(mode="after")
    def _check(self) -> VIXSettings:
        if not (self.complacent_below < self.normal_below < self.elevated_below):
            raise ValueError("vix bands must be strictly increasing")
        return self


class MacroCondition(BaseModel):
    asset: str                 # proxy role: equity / bond / dollar / gold
    op: str                    # "gt" or "lt", compared against day change pct
    value: float


class MacroRule(BaseModel):
    tag: str
    when: list[MacroCondition] = Field(default_factory=list)
    # Optional dependency on an earlier classification (e.g. relation == flight_to_safety)
    requires: dict[str, str] = Field(default_factory=dict)


def _cond(asset: str, op: str, value: float) -> MacroCondition:
    return MacroCondition(asset=asset, op=op, value=value)


class MacroSettings(BaseModel):
    proxies: dict[str, str] = Field(default_factory=lambda: {
        "equity": "SPY",
        "bond": "TLT",
        "dollar": "UUP",
        "gold": "GLD",
    })
    relation_rules: list[MacroRule] = Field(default_factory=lambda: [
        MacroRule(tag="flight_to_safety", when=[_cond("equity", "lt", -0.3), _cond("bond", "gt", 0.2)]),
        MacroRule(tag="risk_on", when=[_cond("equity", "gt", 0.3), _cond("bond", "lt", -0.2)]),
    ])
    dollar_rules: list[MacroRule] = Field(default_factory=lambda: [
        MacroRule(tag="headwind", when=[_cond("dollar", "gt", 0.3)]),
        MacroRule(tag="tailwind", when=[_cond("dollar", "lt", -0.3)]),
    ])
    regime_rules: list[MacroRule] = Field(default_factory=lambda: [
        MacroRule(tag="risk_off", requires={"relation": "flight_to_safety"}),
        MacroRule(tag="risk_off", when=[_cond("equity", "lt", -0.3)]),
        MacroRule(tag="risk_off", when=[_cond("equity", "lt", 0.0)], requires={"dollar": "headwind"}),
        MacroRule(tag="risk_on", when=[_cond("equity", "gt", 0.3)], requires={"relation": "risk_on"}),
    ])
    default_relation: str = "mixed"
    default_dollar: str = "neutral"
    default_regime: str = "mixed"
    regime_bias: dict[str, float] = Field(default_factory=lambda: {
        "risk_on": 0.7,
        "risk_off": -0.7,
        "mixed": 0.0,
    })
    dollar_bias: dict[str, float] = Field(default_factory=lambda: {
        "headwind": -0.2,
        "tailwind": 0.2,
        "neutral": 0.0,
    })


class IntradaySettings(BaseModel):
    require_market_open: bool = True
    min_bars: int = 2
    at_vwap_sigma: float = 0.1
    divergence_bars: int = 12
    neutral_fraction: float = 0.05
    position_bias: dict[str, float] = Field(default_factory=lambda: {
        "above_upper2": 0.2,
        "between_upper1_upper2": 0.5,
        "between_vwap_upper1": 0.2,
        "at_vwap": 0.0,
        "between_lower1_vwap": -0.2,
        "between_lower2_lower1": -0.5,
        "below_lower2": -0.2,
    })
    delta_bias: float = 0.6
    divergence_damping: float = 0.5


class ExpectedMoveSettings(BaseModel):
    annualization_factor: int = 252
    weekly_days: int = 5


class MomentumSettings(BaseModel):
    lookback_days: int = 60
    rsi_period: int = 14
    ema_fast: int = 9
    ema_slow: int = 21
    ema_tolerance: float = 0.001
    slope_bars: int = 5
    slope_threshold: float = 0.05
    rsi_bull: float = 55.0
    rsi_bear: float = 45.0
    rsi_overbought: float = 72.0
    rsi_oversold: float = 28.0
    confidence_cap: float = 85.0


class ScoringSettings(BaseModel):
    weights: dict[str, float] = Field(default_factory=lambda: {
        "gex": 22.5,
        "volume_delta": 17.5,
        "pcr": 15.0,
        "vix_regime": 15.0,
        "vwap": 10.0,
        "iv_skew": 10.0,
        "macro": 5.0,
        "momentum": 5.0,
        "expected_move": 0.0,
    })
    bullish_above: float = 5.0
    bearish_below: float = -5.0
    top_signals: int = 3
    confidence_cap: float = 95.0
    flat_contribution: float = 0.05

    @model_validator(mode="after")
    def _check(self) -> ScoringSettings:
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("scoring.weights must be non-negative")
        if self.bearish_below > self.bullish_above:
            raise ValueError("scoring.bearish_below must be <= scoring.bullish_above")
        return self


class Settings(BaseModel):
    """Central config, loaded from YAML, overridable per-field."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    market_hours: MarketHoursSettings = Field(default_factory=MarketHoursSettings)
    pcr: PCRSettings = Field(default_factory=PCRSettings)
    gex: GEXSettings = Field(default_factory=GEXSettings)
    skew: SkewSettings = Field(default_factory=SkewSettings)
    vix: VIXSettings = Field(default_factory=VIXSettings)
    macro: MacroSettings = Field(default_factory=MacroSettings)
    intraday: IntradaySettings = Field(default_factory=IntradaySettings)
    expected_move: ExpectedMoveSettings = Field(default_factory=ExpectedMoveSettings)
    momentum: MomentumSettings = Field(default_factory=MomentumSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)


# --- Loading ---

_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
_USER_CONFIG_PATH = Path.home() / ".market_intelligence" / "config.yaml"

_cached_settings: Settings | None = None


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. Returns new dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    user_config_path: Path | None = None,
    _force_reload: bool = False,
) -> Settings:
    """Load defaults.yaml, merge ~/.market_intelligence/config.yaml if present.

    Args:
        user_config_path: Override path for user config file.
        _force_reload: Bypass cache (for testing).

    Returns:
        Merged Settings instance.
    """
    global _cached_settings
    if _cached_settings is not None and not _force_reload:
        return _cached_settings

    # Layer 1: package defaults
    with open(_DEFAULTS_PATH) as f:
        defaults = yaml.safe_load(f) or {}

    # Layer 2: user overrides
    user_path = user_config_path or _USER_CONFIG_PATH
    if user_path.exists():
        with open(user_path) as f:
            user = yaml.safe_load(f) or {}
        merged = _deep_merge(defaults, user)
    else:
        merged = defaults

    _cached_settings = Settings(**merged)
    return _cached_settings


def get_settings() -> Settings:
    """Get cached settings (singleton). Loads on first call."""
    return load_settings()


def reset_settings() -> None:
    """Clear cached settings. Next get_settings() will reload from YAML."""
    global _cached_settings
    _cached_settings = None
