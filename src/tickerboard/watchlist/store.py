"""Typed SQLite read/write abstraction for watchlist records.

Decimal prices are stored as TEXT and restored as Decimal on read. Saves
replace the stored snapshot wholesale, preserving the in-list order.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

from tickerboard.logging import get_logger
from tickerboard.models import (
    ListType,
    Market,
    TrendDirection,
    TrendResult,
    WatchlistTickerRecord,
)
from tickerboard.watchlist.database import WatchlistDatabase

logger = get_logger(__name__)

_COLUMNS = (
    "list_type, symbol, position, display_name, market, current_price, "
    "percent_change_24h, is_exchange_listed, comment, star_rating, "
    "trend_direction, trend_confidence, added_at"
)


def _record_to_row(list_type: ListType, position: int, record: WatchlistTickerRecord) -> tuple:
    return (
        list_type.value,
        record.symbol,
        position,
        record.display_name,
        record.market.value,
        str(record.current_price),
        str(record.percent_change_24h),
        int(record.is_exchange_listed),
        record.comment,
        record.star_rating,
        record.trend.direction.value if record.trend is not None else None,
        record.trend.confidence if record.trend is not None else None,
        record.added_at.isoformat(),
    )


def _row_to_record(row: tuple) -> WatchlistTickerRecord:
    (
        _list_type,
        symbol,
        _position,
        display_name,
        market,
        current_price,
        percent_change,
        is_listed,
        comment,
        star_rating,
        trend_direction,
        trend_confidence,
        added_at,
    ) = row
    trend = None
    if trend_direction is not None:
        trend = TrendResult(
            direction=TrendDirection(trend_direction),
            confidence=int(trend_confidence or 0),
        )
    return WatchlistTickerRecord(
        symbol=symbol,
        display_name=display_name,
        market=Market(market),
        current_price=Decimal(current_price),
        percent_change_24h=Decimal(percent_change),
        is_exchange_listed=bool(is_listed),
        comment=comment,
        star_rating=int(star_rating),
        trend=trend,
        added_at=datetime.fromisoformat(added_at),
    )


class WatchlistStore:
    """Async SQLite store for the four watchlist buckets.

    Usage:
        async with WatchlistDatabase("data/watchlist.db") as database:
            store = WatchlistStore(database)
            lists = await store.load_all()
    """

    def __init__(self, database: WatchlistDatabase) -> None:
        self._database = database
        # save_all is DELETE + INSERT; concurrent refresh tasks must not interleave
        self._lock = asyncio.Lock()

    async def save_all(
        self, lists: dict[ListType, dict[str, WatchlistTickerRecord]]
    ) -> int:
        """Replace the stored watchlist with ``lists``. Returns rows written."""
        data = [
            _record_to_row(list_type, position, record)
            for list_type, records in lists.items()
            for position, record in enumerate(records.values())
        ]

        db = self._database.db
        async with self._lock:
            await db.execute("DELETE FROM watchlist_tickers")
            if data:
                await db.executemany(
                    f"INSERT INTO watchlist_tickers ({_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    data,
                )
            await db.commit()

        logger.debug("watchlist_saved", rows=len(data))
        return len(data)

    async def load_all(self) -> dict[ListType, dict[str, WatchlistTickerRecord]]:
        """Load every bucket in stored order. Missing buckets come back empty."""
        lists: dict[ListType, dict[str, WatchlistTickerRecord]] = {
            list_type: {} for list_type in ListType
        }
        cursor = await self._database.db.execute(
            f"SELECT {_COLUMNS} FROM watchlist_tickers ORDER BY list_type, position"
        )
        rows = await cursor.fetchall()

        skipped = 0
        for row in rows:
            try:
                list_type = ListType(row[0])
                record = _row_to_record(row)
            except (ValueError, ArithmeticError):
                skipped += 1
                continue
            lists[list_type][record.symbol] = record

        logger.info("watchlist_loaded", rows=len(rows) - skipped, skipped=skipped)
        return lists
