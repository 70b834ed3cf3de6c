"""Shared data models for the ticker watchlist dashboard.

Prices, changes and candle values use Decimal. Never use float for market data.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


class Market(str, Enum):
    """Trading venue classification with its own endpoints."""

    SPOT = "spot"
    FUTURES = "futures"


class ListType(str, Enum):
    """Watchlist interest bucket."""

    LONG = "long"
    SHORT = "short"
    LONG_WAIT = "long-wait"
    SHORT_WAIT = "short-wait"


class TrendDirection(str, Enum):
    """Price trend classification relative to the window mean."""

    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of upstream API reachability.

    ``retry_count`` is reset to 0 whenever ``connected`` becomes true and only
    grows while disconnected. Once it reaches ``max_retries`` the failure
    episode is fatal: no further retry is self-scheduled.
    """

    connected: bool = False
    last_check_time: datetime | None = None
    retry_count: int = 0
    last_error: str | None = None
    max_retries: int = 3

    @property
    def fatal(self) -> bool:
        return not self.connected and self.retry_count >= self.max_retries

    @property
    def summary(self) -> str:
        """Human-readable status line for the dashboard indicator."""
        if self.connected:
            checked = (
                self.last_check_time.strftime("%H:%M:%S")
                if self.last_check_time is not None
                else "never"
            )
            return f"Connected to Binance ({checked})"
        if self.last_check_time is None:
            return "Connection not checked yet"
        error = self.last_error or "Unknown error"
        return f"Connection error: {error} [Retry {self.retry_count}/{self.max_retries}]"

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict."""
        return {
            "connected": self.connected,
            "last_check_time": (
                self.last_check_time.isoformat() if self.last_check_time else None
            ),
            "retry_count": self.retry_count,
            "last_error": self.last_error,
            "max_retries": self.max_retries,
            "fatal": self.fatal,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class InstrumentCatalogEntry:
    """A tradable instrument as listed by the exchange."""

    symbol: str
    display_name: str
    market: Market

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "display_name": self.display_name,
            "market": self.market.value,
        }


@dataclass(frozen=True)
class Candle:
    """One kline bucket. Binance kline arrays carry the close at index 4."""

    open_time: int  # Unix milliseconds
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal
    close_time: int

    def to_dict(self) -> dict:
        return {
            "open_time": self.open_time,
            "open": str(self.open),
            "high": str(self.high),
            "low": str(self.low),
            "close": str(self.close),
            "volume": str(self.volume),
            "close_time": self.close_time,
        }


@dataclass
class PriceHistoryCacheEntry:
    """Cached candle window for one (symbol, market, window_days) key."""

    candles: list[Candle]
    fetched_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class TrendResult:
    """Trend direction with a bounded 0-100 confidence score."""

    direction: TrendDirection
    confidence: int

    def to_dict(self) -> dict:
        return {"direction": self.direction.value, "confidence": self.confidence}


@dataclass(frozen=True)
class Ticker24h:
    """Rolling 24h ticker statistics for a symbol."""

    symbol: str
    last_price: Decimal
    price_change_percent: Decimal


@dataclass
class WatchlistTickerRecord:
    """A ticker placed in one of the watchlist buckets."""

    symbol: str
    display_name: str
    market: Market = Market.SPOT
    current_price: Decimal = Decimal("0")
    percent_change_24h: Decimal = Decimal("0")
    is_exchange_listed: bool = False
    comment: str = ""
    star_rating: int = 0  # 0-3
    trend: TrendResult | None = None
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict with Decimal values as strings."""
        return {
            "symbol": self.symbol,
            "display_name": self.display_name,
            "market": self.market.value,
            "current_price": str(self.current_price),
            "percent_change_24h": str(self.percent_change_24h),
            "is_exchange_listed": self.is_exchange_listed,
            "comment": self.comment,
            "star_rating": self.star_rating,
            "trend": self.trend.to_dict() if self.trend is not None else None,
            "added_at": self.added_at.isoformat(),
        }
