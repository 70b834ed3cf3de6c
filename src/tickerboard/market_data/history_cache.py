"""In-memory candle history cache with time-to-live expiry.

Entries are keyed by ``(symbol, market, window_days)``. An entry is served
while ``now - fetched_at < ttl``; expired entries are never evicted, they are
treated as absent and overwritten by the next successful fetch. The symbol set
is finite, so growth is bounded in practice.

All access happens on the single event loop, so no lock is taken. Two
coroutines that miss the same key before either fetch completes will both hit
the network; the later ``store`` wins.
"""

import time
from collections.abc import Callable

from tickerboard.logging import get_logger
from tickerboard.models import Candle, Market, PriceHistoryCacheEntry

logger = get_logger(__name__)

CacheKey = tuple[str, Market, int]


class PriceHistoryCache:
    """TTL cache of candle windows, memory-only."""

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, PriceHistoryCacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, symbol: str, market: Market, window_days: int) -> list[Candle] | None:
        """Return the cached candles for a key, or None if missing or expired."""
        entry = self._entries.get((symbol, market, window_days))
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            return None
        return entry.candles

    def store(
        self,
        symbol: str,
        market: Market,
        window_days: int,
        candles: list[Candle],
    ) -> None:
        """Insert or overwrite the entry for a key, stamped with the current time."""
        self._entries[(symbol, market, window_days)] = PriceHistoryCacheEntry(
            candles=candles,
            fetched_at=self._clock(),
        )
        logger.debug(
            "price_history_cached",
            symbol=symbol,
            market=market.value,
            window_days=window_days,
            candles=len(candles),
        )

    def age(self, symbol: str, market: Market, window_days: int) -> float | None:
        """Return seconds since the entry was fetched, or None if never cached."""
        entry = self._entries.get((symbol, market, window_days))
        if entry is None:
            return None
        return self._clock() - entry.fetched_at

    def __len__(self) -> int:
        return len(self._entries)
