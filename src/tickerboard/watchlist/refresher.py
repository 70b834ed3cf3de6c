"""Periodic price refresh for every exchange-listed watchlist ticker.

Each tick spawns one task per ticker and does not wait for them: their
completions interleave in arrival order. A ticker's task only touches that
ticker's record, so out-of-order completion across tickers is harmless, and
duplicate in-flight refreshes of one ticker resolve as last-response-wins.
"""

import asyncio

from tickerboard.logging import get_logger
from tickerboard.market_data.service import MarketDataService
from tickerboard.models import ListType
from tickerboard.watchlist.manager import Watchlist

logger = get_logger(__name__)


class PriceRefresher:
    """Fire-and-forget refresh driver on a fixed interval."""

    def __init__(
        self,
        watchlist: Watchlist,
        market_data: MarketDataService,
        interval: float = 10.0,
    ) -> None:
        self._watchlist = watchlist
        self._market_data = market_data
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        # Strong references so spawned refreshes are not garbage-collected mid-flight
        self._inflight: set[asyncio.Task] = set()  # type: ignore[type-arg]

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def start(self) -> None:
        """Begin refreshing prices in the background."""
        if self._running:
            logger.warning("price_refresher_already_running")
            return
        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info("price_refresher_started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the timer and cancel refreshes still in flight."""
        self._running = False
        tasks = [t for t in (self._task, *self._inflight) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._inflight.clear()
        logger.info("price_refresher_stopped")

    async def _refresh_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if not self._running:
                break
            self.refresh_all()

    def refresh_all(self) -> int:
        """Spawn one refresh task per listed ticker. Returns how many were spawned."""
        spawned = 0
        for list_type, record in self._watchlist.entries():
            if not record.is_exchange_listed:
                continue
            task = asyncio.create_task(self.refresh_ticker(list_type, record.symbol))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            spawned += 1
        logger.debug("price_refresh_tick", spawned=spawned)
        return spawned

    async def refresh_ticker(self, list_type: ListType, symbol: str) -> bool:
        """Refresh one ticker's quote, and its trend when the quote changed.

        Returns:
            True if the record was updated. Failures leave it unchanged.
        """
        record = self._watchlist.get(list_type, symbol)
        if record is None or not record.is_exchange_listed:
            return False

        try:
            ticker = await self._market_data.get_24h_ticker(symbol, record.market)
            if ticker is None:
                return False

            changed = self._watchlist.apply_quote(
                list_type, symbol, ticker.last_price, ticker.price_change_percent
            )
            if not changed:
                return False

            trend = await self._market_data.analyze_trend(symbol, record.market)
            # The ticker may have been removed or re-added during the await
            current = self._watchlist.get(list_type, symbol)
            if trend is not None and current is not None:
                current.trend = trend

            await self._watchlist.save()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning(
                "ticker_refresh_error",
                list_type=list_type.value,
                symbol=symbol,
                exc_info=True,
            )
            return False
        return True
