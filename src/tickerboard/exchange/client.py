"""Abstract exchange client interface.

Defines the contract for the five public endpoints the dashboard depends on.
Services depend only on this interface, keeping Binance-specific details
isolated in the concrete implementation.

Implementations return decoded JSON payloads unchanged and raise the
MarketDataError taxonomy from ``tickerboard.exceptions`` on any failure.
"""

from abc import ABC, abstractmethod

from tickerboard.models import Market


class ExchangeClient(ABC):
    """Abstract base class for exchange REST API clients."""

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Hit the liveness endpoint. Returns normally only on success."""
        ...

    @abstractmethod
    async def fetch_exchange_info(self, market: Market) -> dict:
        """Return the raw exchange info payload with its ``symbols`` descriptors."""
        ...

    @abstractmethod
    async def fetch_ticker_price(self, symbol: str, market: Market) -> dict:
        """Return the raw latest-price payload, e.g. ``{"symbol": ..., "price": "..."}``."""
        ...

    @abstractmethod
    async def fetch_ticker_24hr(self, symbol: str, market: Market) -> dict:
        """Return the raw rolling 24h statistics payload.

        Fields used downstream: ``lastPrice`` and ``priceChangePercent`` (strings).
        """
        ...

    @abstractmethod
    async def fetch_klines(
        self,
        symbol: str,
        market: Market,
        interval: str,
        limit: int,
    ) -> list[list]:
        """Fetch raw kline rows, oldest first.

        Each row is ``[open_time, open, high, low, close, volume, close_time, ...]``
        with prices as strings.
        """
        ...
