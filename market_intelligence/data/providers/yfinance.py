"""YFinanceProvider: spot, chains, bars and macro quotes via yfinance."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import date, timedelta

import pandas as pd
import yfinance as yf

from market_intelligence.data.exceptions import DataUnavailable
from market_intelligence.data.providers.base import MarketDataProvider
from market_intelligence.models.market import (
    IntradayBar,
    MacroQuote,
    OptionsChainEntry,
    OptionType,
)

logger = logging.getLogger(__name__)

# Aliases for tickers whose yfinance symbol differs from the common name.
# Keys: user-facing ticker.  Values: yfinance symbol.
_YFINANCE_ALIASES: dict[str, str] = {
    "SPX":  "^GSPC",   # S&P 500 Index
    "NDX":  "^NDX",    # Nasdaq-100 Index
    "RUT":  "^RUT",    # Russell 2000 Index
    "VIX":  "^VIX",    # CBOE Volatility Index
    "VIX3M": "^VIX3M", # CBOE 3-Month Volatility Index
}

_OHLCV = ["Open", "High", "Low", "Close", "Volume"]


def approximate_greeks(
    spot: float, strike: float, iv: float, years: float, is_call: bool,
) -> tuple[float, float, float, float]:
    """Black-Scholes (r=0) delta, gamma, theta/day, vega/vol-point.

    Yahoo chains carry IV but no Greeks. ``iv`` is a decimal (0.18).
    Returns zeros when the inputs cannot be priced.
    """
    if spot <= 0 or strike <= 0 or iv <= 0 or years <= 0:
        return 0.0, 0.0, 0.0, 0.0
    root_t = math.sqrt(years)
    d1 = (math.log(spot / strike) + 0.5 * iv * iv * years) / (iv * root_t)
    pdf = math.exp(-0.5 * d1 * d1) / math.sqrt(2 * math.pi)
    cdf = 0.5 * (1 + math.erf(d1 / math.sqrt(2)))
    delta = cdf if is_call else cdf - 1
    gamma = pdf / (spot * iv * root_t)
    theta = -(spot * pdf * iv) / (2 * root_t) / 365
    vega = spot * pdf * root_t / 100
    return delta, gamma, theta, vega


class YFinanceProvider(MarketDataProvider):
    """Fetches everything a cycle needs from Yahoo Finance."""

    def __init__(self, expirations: int = 3) -> None:
        self._expirations = expirations

    @staticmethod
    def _resolve_ticker(ticker: str) -> str:
        """Translate user-facing ticker to yfinance symbol."""
        return _YFINANCE_ALIASES.get(ticker.upper(), ticker)

    @property
    def provider_name(self) -> str:
        return "yfinance"

    def _download(self, symbol: str, **kwargs) -> pd.DataFrame:
        """yf.download with the column cleanup every caller needs.

        Raises DataUnavailable on failure or an empty frame.
        """
        try:
            df = yf.download(
                self._resolve_ticker(symbol),
                progress=False,
                auto_adjust=True,
                **kwargs,
            )
        except Exception as e:
            raise DataUnavailable("yfinance", symbol, str(e)) from e

        if df is None or df.empty:
            raise DataUnavailable("yfinance", symbol, "No data returned (empty DataFrame)")

        # yfinance may return MultiIndex columns for single ticker; flatten
        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)

        missing = set(_OHLCV) - set(df.columns)
        if missing:
            raise DataUnavailable("yfinance", symbol, f"Missing columns: {missing}")

        df = df[_OHLCV].copy()
        df.index = pd.DatetimeIndex(df.index)
        df.sort_index(inplace=True)
        df.dropna(subset=["Open", "High", "Low", "Close"], inplace=True)
        if df.empty:
            raise DataUnavailable("yfinance", symbol, "All rows had NaN values after cleaning")
        return df

    def fetch_spot(self, symbol: str) -> float:
        df = self._download(symbol, period="5d", interval="1m")
        price = float(df["Close"].iloc[-1])
        if price <= 0:
            raise DataUnavailable("yfinance", symbol, f"non-positive spot {price}")
        return price

    def fetch_intraday_bars(self, symbol: str) -> list[IntradayBar]:
        df = self._download(symbol, period="1d", interval="5m")
        df["Volume"] = df["Volume"].fillna(0).clip(lower=0)
        return [
            IntradayBar(
                timestamp=ts.to_pydatetime(),
                open=float(row.Open),
                high=float(row.High),
                low=float(row.Low),
                close=float(row.Close),
                volume=float(row.Volume),
            )
            for ts, row in df.iterrows()
        ]

    def fetch_daily_closes(self, symbol: str, lookback_days: int) -> list[float]:
        # Calendar days, padded for weekends and holidays.
        start = date.today() - timedelta(days=int(lookback_days * 1.5) + 7)
        df = self._download(symbol, start=start, interval="1d")
        closes = df["Close"].astype(float).tolist()
        return closes[-lookback_days:]

    def fetch_macro_quotes(self, symbols: Sequence[str]) -> dict[str, MacroQuote]:
        quotes: dict[str, MacroQuote] = {}
        for symbol in symbols:
            try:
                df = self._download(symbol, period="5d", interval="1d")
            except DataUnavailable:
                logger.warning("Macro quote fetch failed for %s", symbol, exc_info=True)
                continue
            closes = df["Close"].astype(float)
            price = float(closes.iloc[-1])
            prev = float(closes.iloc[-2]) if len(closes) > 1 else price
            change = price - prev
            quotes[symbol] = MacroQuote(
                symbol=symbol,
                price=price,
                change=change,
                change_pct=(change / prev * 100) if prev else 0.0,
            )
        return quotes

    def fetch_chain(self, symbol: str) -> list[OptionsChainEntry]:
        """Nearest expirations of the chain, IV in percent, Greeks approximated."""
        try:
            ticker_obj = yf.Ticker(self._resolve_ticker(symbol))
            expirations = ticker_obj.options
        except Exception as e:
            raise DataUnavailable("yfinance", symbol, f"Failed to get options expirations: {e}") from e

        if not expirations:
            raise DataUnavailable("yfinance", symbol, "No options expirations available")

        spot = self.fetch_spot(symbol)
        today = date.today()
        entries: list[OptionsChainEntry] = []
        for exp_str in list(expirations)[: self._expirations]:
            try:
                chain = ticker_obj.option_chain(exp_str)
            except Exception:
                logger.warning("Option chain fetch failed for %s %s", symbol, exp_str, exc_info=True)
                continue

            expiration = pd.Timestamp(exp_str).date()
            # Same-day expiry still has the session left; count it as one day.
            years = max((expiration - today).days, 1) / 365
            for opt_type, df_raw in [(OptionType.CALL, chain.calls), (OptionType.PUT, chain.puts)]:
                if df_raw is None or df_raw.empty:
                    continue
                volume = df_raw["volume"].fillna(0).astype(int)
                oi = df_raw["openInterest"].fillna(0).astype(int)
                iv = df_raw["impliedVolatility"].fillna(0.0).astype(float)
                for strike, vol, open_int, sigma in zip(df_raw["strike"], volume, oi, iv):
                    delta, gamma, theta, vega = approximate_greeks(
                        spot, float(strike), float(sigma), years, opt_type == OptionType.CALL,
                    )
                    entries.append(OptionsChainEntry(
                        strike=float(strike),
                        option_type=opt_type,
                        volume=max(int(vol), 0),
                        open_interest=max(int(open_int), 0),
                        delta=delta,
                        gamma=gamma,
                        theta=theta,
                        vega=vega,
                        implied_volatility=float(sigma) * 100,
                        expiration=expiration,
                    ))

        if not entries:
            raise DataUnavailable("yfinance", symbol, "No options chain data returned")
        return entries
