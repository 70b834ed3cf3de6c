"""Tests for WatchlistDatabase and WatchlistStore against a temporary SQLite file."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from tickerboard.models import (
    ListType,
    Market,
    TrendDirection,
    TrendResult,
    WatchlistTickerRecord,
)
from tickerboard.watchlist.database import SCHEMA_VERSION, WatchlistDatabase
from tickerboard.watchlist.manager import Watchlist
from tickerboard.watchlist.store import WatchlistStore


@pytest_asyncio.fixture
async def database(tmp_path):
    async with WatchlistDatabase(str(tmp_path / "nested" / "watchlist.db")) as database:
        yield database


def _record(symbol: str, **overrides) -> WatchlistTickerRecord:
    values = {
        "symbol": symbol,
        "display_name": symbol.removesuffix("USDT"),
        "added_at": datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return WatchlistTickerRecord(**values)


def _empty_lists() -> dict:
    return {list_type: {} for list_type in ListType}


class TestWatchlistDatabase:
    def test_db_before_connect_raises(self, tmp_path) -> None:
        database = WatchlistDatabase(str(tmp_path / "watchlist.db"))
        with pytest.raises(RuntimeError):
            database.db

    @pytest.mark.asyncio
    async def test_schema_version_recorded(self, database) -> None:
        assert await database.schema_version() == SCHEMA_VERSION
        assert database.path.parent.name == "nested"

    @pytest.mark.asyncio
    async def test_reopen_keeps_existing_rows(self, tmp_path) -> None:
        path = str(tmp_path / "watchlist.db")
        async with WatchlistDatabase(path) as database:
            lists = _empty_lists()
            lists[ListType.LONG] = {"BTCUSDT": _record("BTCUSDT")}
            await WatchlistStore(database).save_all(lists)

        async with WatchlistDatabase(path) as database:
            loaded = await WatchlistStore(database).load_all()

        assert list(loaded[ListType.LONG]) == ["BTCUSDT"]

    @pytest.mark.asyncio
    async def test_newer_schema_is_refused(self, tmp_path) -> None:
        path = str(tmp_path / "watchlist.db")
        async with WatchlistDatabase(path) as database:
            await database.db.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1}")
            await database.db.commit()

        with pytest.raises(RuntimeError):
            await WatchlistDatabase(path).connect()


class TestWatchlistStore:
    @pytest.mark.asyncio
    async def test_empty_database_loads_every_list(self, database) -> None:
        lists = await WatchlistStore(database).load_all()

        assert set(lists) == set(ListType)
        assert all(records == {} for records in lists.values())

    @pytest.mark.asyncio
    async def test_saved_records_survive_reload(self, database) -> None:
        store = WatchlistStore(database)
        lists = _empty_lists()
        lists[ListType.LONG] = {
            "SOLUSDT": _record(
                "SOLUSDT",
                market=Market.FUTURES,
                current_price=Decimal("142.123456"),
                percent_change_24h=Decimal("-3.21"),
                is_exchange_listed=True,
                comment="breakout",
                star_rating=2,
                trend=TrendResult(TrendDirection.DOWN, 41),
            ),
            "BTCUSDT": _record("BTCUSDT"),
        }

        assert await store.save_all(lists) == 2
        loaded = await store.load_all()

        assert list(loaded[ListType.LONG]) == ["SOLUSDT", "BTCUSDT"]
        sol = loaded[ListType.LONG]["SOLUSDT"]
        assert sol == lists[ListType.LONG]["SOLUSDT"]
        assert isinstance(sol.current_price, Decimal)
        assert loaded[ListType.LONG]["BTCUSDT"].trend is None

    @pytest.mark.asyncio
    async def test_save_replaces_previous_snapshot(self, database) -> None:
        store = WatchlistStore(database)
        lists = _empty_lists()
        lists[ListType.SHORT] = {"ETHUSDT": _record("ETHUSDT")}
        await store.save_all(lists)

        await store.save_all(_empty_lists())

        loaded = await store.load_all()
        assert loaded[ListType.SHORT] == {}

    @pytest.mark.asyncio
    async def test_corrupt_rows_are_skipped(self, database) -> None:
        store = WatchlistStore(database)
        lists = _empty_lists()
        lists[ListType.LONG] = {"BTCUSDT": _record("BTCUSDT")}
        await store.save_all(lists)
        await database.db.execute(
            "INSERT INTO watchlist_tickers (list_type, symbol, position, display_name, "
            "market, current_price, percent_change_24h, is_exchange_listed, comment, "
            "star_rating, added_at) VALUES "
            "('long', 'BADUSDT', 1, 'BAD', 'spot', 'not-a-number', '0', 0, '', 0, "
            "'2024-03-01T12:00:00+00:00')"
        )
        await database.db.commit()

        loaded = await store.load_all()

        assert list(loaded[ListType.LONG]) == ["BTCUSDT"]


class TestWatchlistPersistence:
    @pytest.mark.asyncio
    async def test_mutations_persist_across_instances(self, database) -> None:
        market_data = MagicMock()
        market_data.lookup.return_value = None
        market_data.get_24h_ticker = AsyncMock()

        first = Watchlist(market_data, store=WatchlistStore(database))
        await first.add(ListType.LONG_WAIT, "abc")
        await first.add(ListType.LONG_WAIT, "xyz")
        await first.rate(ListType.LONG_WAIT, "XYZUSDT", 3)
        await first.move(ListType.LONG_WAIT, "XYZUSDT", "up")

        second = Watchlist(market_data, store=WatchlistStore(database))
        await second.load()

        records = second.records(ListType.LONG_WAIT)
        assert [r.symbol for r in records] == ["XYZUSDT", "ABCUSDT"]
        assert records[0].star_rating == 3
