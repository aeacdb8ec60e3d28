"""MarketDataProvider abstract base class."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from market_intelligence.models.market import IntradayBar, MacroQuote, OptionsChainEntry


class MarketDataProvider(ABC):
    """Source of everything one compute cycle needs.

    Implementations raise ``DataUnavailable`` on failure or empty responses;
    the fetcher turns those into per-signal reasons.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    def fetch_spot(self, symbol: str) -> float:
        """Latest traded price of the underlying."""
        ...

    @abstractmethod
    def fetch_chain(self, symbol: str) -> list[OptionsChainEntry]:
        """Options chain for the nearest expirations."""
        ...

    @abstractmethod
    def fetch_macro_quotes(self, symbols: Sequence[str]) -> dict[str, MacroQuote]:
        """Quotes keyed by symbol. Symbols that fail are simply absent."""
        ...

    @abstractmethod
    def fetch_intraday_bars(self, symbol: str) -> list[IntradayBar]:
        """Today's regular-session bars, oldest first."""
        ...

    @abstractmethod
    def fetch_daily_closes(self, symbol: str, lookback_days: int) -> list[float]:
        """Daily closes over roughly ``lookback_days`` sessions, oldest first."""
        ...
