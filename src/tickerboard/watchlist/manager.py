"""Watchlist of tickers organized into the long/short/long-wait/short-wait buckets.

Each bucket is an insertion-ordered dict keyed by symbol; the dict order is
the display order. Every mutation is persisted through the optional
WatchlistStore.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from tickerboard.exceptions import (
    DuplicateTickerError,
    InvalidRatingError,
    InvalidSymbolError,
    TickerNotFoundError,
)
from tickerboard.logging import get_logger
from tickerboard.market_data.service import MarketDataService
from tickerboard.models import ListType, Market, WatchlistTickerRecord
from tickerboard.watchlist.store import WatchlistStore

logger = get_logger(__name__)

PRICE_QUANTUM = Decimal("0.000001")
CHANGE_QUANTUM = Decimal("0.01")
MAX_STARS = 3

_DISALLOWED_CHARS = re.compile(r"[^A-Z0-9.]")
_PERPETUAL_MARKER = ".P"


def normalize_symbol(raw: str, quote_asset: str = "USDT") -> str:
    """Turn user input into an exchange symbol.

    Uppercases, drops characters other than letters, digits and dots, strips
    a ``.P`` perpetual marker, and otherwise appends the quote asset when it
    is missing: ``" btc "`` -> ``"BTCUSDT"``, ``"ETHUSDT.P"`` -> ``"ETHUSDT"``.

    Raises:
        InvalidSymbolError: if nothing is left after cleaning.
    """
    symbol = _DISALLOWED_CHARS.sub("", raw.strip().upper())
    if not symbol:
        raise InvalidSymbolError("Ticker symbol is empty")

    if _PERPETUAL_MARKER in symbol:
        symbol = symbol.replace(_PERPETUAL_MARKER, "", 1)
    elif not symbol.endswith(quote_asset):
        symbol += quote_asset
    return symbol


def _quantize(value: Decimal, quantum: Decimal) -> Decimal:
    try:
        return value.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"{value} does not fit at {quantum} precision") from exc


def quantize_price(value: Decimal) -> Decimal:
    """Round to 6 decimals. Raises ValueError for magnitudes the context cannot hold."""
    return _quantize(value, PRICE_QUANTUM)


def quantize_change(value: Decimal) -> Decimal:
    return _quantize(value, CHANGE_QUANTUM)


class Watchlist:
    """The four watchlist buckets plus the operations the dashboard exposes.

    Args:
        market_data: Source of catalog lookups, 24h tickers and trends.
        store: Optional persistence; when None the watchlist is memory-only.
        quote_asset: Suffix appended by symbol normalization.
    """

    def __init__(
        self,
        market_data: MarketDataService,
        store: WatchlistStore | None = None,
        quote_asset: str = "USDT",
    ) -> None:
        self._market_data = market_data
        self._store = store
        self._quote_asset = quote_asset
        self._lists: dict[ListType, dict[str, WatchlistTickerRecord]] = {
            list_type: {} for list_type in ListType
        }

    # ──────────────────────────────────────────────
    # Persistence
    # ──────────────────────────────────────────────

    async def load(self) -> None:
        """Replace in-memory buckets with the persisted snapshot."""
        if self._store is None:
            return
        self._lists = await self._store.load_all()

    async def save(self) -> None:
        if self._store is None:
            return
        await self._store.save_all(self._lists)

    # ──────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────

    def get(self, list_type: ListType, symbol: str) -> WatchlistTickerRecord | None:
        return self._lists[list_type].get(symbol)

    def records(self, list_type: ListType) -> list[WatchlistTickerRecord]:
        """Records of one bucket in display order."""
        return list(self._lists[list_type].values())

    def entries(self) -> list[tuple[ListType, WatchlistTickerRecord]]:
        """Every (bucket, record) pair, bucket by bucket in display order."""
        return [
            (list_type, record)
            for list_type, records in self._lists.items()
            for record in records.values()
        ]

    def stats(self) -> dict[str, int]:
        """Ticker counts per bucket plus the overall total."""
        counts = {list_type.value: len(records) for list_type, records in self._lists.items()}
        counts["total"] = sum(len(records) for records in self._lists.values())
        return counts

    def to_dict(self) -> dict:
        return {
            list_type.value: [record.to_dict() for record in records.values()]
            for list_type, records in self._lists.items()
        }

    def _require(self, list_type: ListType, symbol: str) -> WatchlistTickerRecord:
        record = self._lists[list_type].get(symbol)
        if record is None:
            raise TickerNotFoundError(f"{symbol} is not in the {list_type.value} list")
        return record

    # ──────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────

    async def add(self, list_type: ListType, raw_symbol: str) -> WatchlistTickerRecord:
        """Add a ticker to a bucket.

        Catalog-listed symbols take their name and market from the catalog and
        get an immediate 24h quote and trend. Unlisted symbols are added as
        spot with a zero price, awaiting manual entry.

        Raises:
            InvalidSymbolError: if the input normalizes to nothing.
            DuplicateTickerError: if the symbol is already in this bucket.
        """
        symbol = normalize_symbol(raw_symbol, self._quote_asset)
        bucket = self._lists[list_type]
        if symbol in bucket:
            raise DuplicateTickerError(f"{symbol} is already in the {list_type.value} list")

        listing = self._market_data.lookup(symbol)
        if listing is not None:
            record = WatchlistTickerRecord(
                symbol=symbol,
                display_name=listing.display_name,
                market=listing.market,
                is_exchange_listed=True,
            )
        else:
            record = WatchlistTickerRecord(
                symbol=symbol,
                display_name=symbol.removesuffix(self._quote_asset) or symbol,
                market=Market.SPOT,
            )

        if record.is_exchange_listed:
            ticker = await self._market_data.get_24h_ticker(symbol, record.market)
            if ticker is not None:
                try:
                    record.current_price = quantize_price(ticker.last_price)
                    record.percent_change_24h = quantize_change(ticker.price_change_percent)
                except ValueError:
                    logger.warning(
                        "ticker_quote_out_of_range",
                        symbol=symbol,
                        last_price=str(ticker.last_price),
                    )
                    record.current_price = Decimal("0")
                    record.percent_change_24h = Decimal("0")
                else:
                    trend = await self._market_data.analyze_trend(symbol, record.market)
                    if trend is not None:
                        record.trend = trend

        # Another add of the same symbol may have landed while quotes were in flight
        bucket = self._lists[list_type]
        if symbol in bucket:
            raise DuplicateTickerError(f"{symbol} is already in the {list_type.value} list")
        bucket[symbol] = record
        await self.save()
        logger.info(
            "ticker_added",
            list_type=list_type.value,
            symbol=symbol,
            listed=record.is_exchange_listed,
        )
        return record

    async def remove(self, list_type: ListType, symbol: str) -> None:
        self._require(list_type, symbol)
        del self._lists[list_type][symbol]
        await self.save()
        logger.info("ticker_removed", list_type=list_type.value, symbol=symbol)

    async def clear(self, list_type: ListType) -> int:
        """Empty a bucket. Returns how many tickers were removed."""
        removed = len(self._lists[list_type])
        self._lists[list_type] = {}
        await self.save()
        logger.info("list_cleared", list_type=list_type.value, removed=removed)
        return removed

    async def move(self, list_type: ListType, symbol: str, direction: str) -> list[str]:
        """Swap a ticker with its neighbour ("up" or "down"). No-op at either end.

        Returns:
            The bucket's symbol order after the move.
        """
        self._require(list_type, symbol)
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")

        order = list(self._lists[list_type])
        index = order.index(symbol)
        target = index - 1 if direction == "up" else index + 1
        if 0 <= target < len(order):
            order[index], order[target] = order[target], order[index]
            return await self.reorder(list_type, order)
        return order

    async def reorder(self, list_type: ListType, symbols: list[str]) -> list[str]:
        """Apply a new display order. Must be a permutation of the bucket's symbols."""
        bucket = self._lists[list_type]
        if sorted(symbols) != sorted(bucket):
            raise ValueError("new order must contain exactly the tickers of the list")
        self._lists[list_type] = {symbol: bucket[symbol] for symbol in symbols}
        await self.save()
        return list(symbols)

    async def rate(self, list_type: ListType, symbol: str, rating: int) -> int:
        """Set a 1-3 star rating; rating again with the current value clears it.

        Returns:
            The new rating (0-3).
        """
        if not 1 <= rating <= MAX_STARS:
            raise InvalidRatingError(f"rating must be between 1 and {MAX_STARS}")
        record = self._require(list_type, symbol)
        record.star_rating = 0 if record.star_rating == rating else rating
        await self.save()
        return record.star_rating

    async def set_comment(self, list_type: ListType, symbol: str, comment: str) -> None:
        record = self._require(list_type, symbol)
        record.comment = comment.strip()
        await self.save()

    async def set_manual_price(
        self,
        list_type: ListType,
        symbol: str,
        price: Decimal,
        change: Decimal = Decimal("0"),
    ) -> WatchlistTickerRecord:
        """Record a manually entered price and 24h change."""
        record = self._require(list_type, symbol)
        record.current_price = quantize_price(price)
        record.percent_change_24h = quantize_change(change)
        await self.save()
        return record

    def apply_quote(
        self,
        list_type: ListType,
        symbol: str,
        price: Decimal,
        change: Decimal,
    ) -> bool:
        """Update a record's price/change in memory. Returns False if nothing changed.

        A record removed while its quote was in flight is left alone.
        """
        record = self._lists[list_type].get(symbol)
        if record is None:
            return False
        new_price = quantize_price(price)
        new_change = quantize_change(change)
        if record.current_price == new_price and record.percent_change_24h == new_change:
            return False
        record.current_price = new_price
        record.percent_change_24h = new_change
        return True
