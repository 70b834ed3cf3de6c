"""Tests for the Watchlist buckets and symbol normalization."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from tickerboard.exceptions import (
    DuplicateTickerError,
    InvalidRatingError,
    InvalidSymbolError,
    TickerNotFoundError,
)
from tickerboard.models import (
    InstrumentCatalogEntry,
    ListType,
    Market,
    Ticker24h,
    TrendDirection,
    TrendResult,
)
from tickerboard.watchlist.manager import Watchlist, normalize_symbol


CATALOG = {
    "BTCUSDT": InstrumentCatalogEntry("BTCUSDT", "BTC", Market.FUTURES),
    "ETHUSDT": InstrumentCatalogEntry("ETHUSDT", "ETH", Market.SPOT),
}


@pytest.fixture
def market_data() -> MagicMock:
    market_data = MagicMock()
    market_data.lookup.side_effect = CATALOG.get
    market_data.get_24h_ticker = AsyncMock(
        return_value=Ticker24h(
            symbol="BTCUSDT",
            last_price=Decimal("64250.1234567"),
            price_change_percent=Decimal("-1.235"),
        )
    )
    market_data.analyze_trend = AsyncMock(
        return_value=TrendResult(direction=TrendDirection.UP, confidence=78)
    )
    return market_data


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock()
    store.save_all = AsyncMock(return_value=0)
    store.load_all = AsyncMock()
    return store


@pytest.fixture
def watchlist(market_data, store) -> Watchlist:
    return Watchlist(market_data, store=store)


async def _fill(watchlist: Watchlist, *symbols: str) -> None:
    for symbol in symbols:
        await watchlist.add(ListType.LONG, symbol)


# ---------------------------------------------------------------------------
# normalize_symbol
# ---------------------------------------------------------------------------


class TestNormalizeSymbol:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("btc", "BTCUSDT"),
            ("  eth ", "ETHUSDT"),
            ("SOLUSDT", "SOLUSDT"),
            ("ETHUSDT.P", "ETHUSDT"),
            ("eth/usdt", "ETHUSDT"),
            ("1000pepe", "1000PEPEUSDT"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_symbol(raw) == expected

    def test_custom_quote_asset(self) -> None:
        assert normalize_symbol("eth", quote_asset="BTC") == "ETHBTC"

    @pytest.mark.parametrize("raw", ["", "   ", "$%/"])
    def test_empty_after_cleaning_raises(self, raw: str) -> None:
        with pytest.raises(InvalidSymbolError):
            normalize_symbol(raw)


# ---------------------------------------------------------------------------
# Adding and removing
# ---------------------------------------------------------------------------


class TestAdd:
    @pytest.mark.asyncio
    async def test_listed_symbol_gets_quote_and_trend(self, watchlist, market_data, store) -> None:
        record = await watchlist.add(ListType.LONG, "btc")

        assert record.symbol == "BTCUSDT"
        assert record.display_name == "BTC"
        assert record.market == Market.FUTURES
        assert record.is_exchange_listed is True
        assert record.current_price == Decimal("64250.123457")
        assert record.percent_change_24h == Decimal("-1.24")
        assert record.trend == TrendResult(TrendDirection.UP, 78)
        market_data.get_24h_ticker.assert_awaited_once_with("BTCUSDT", Market.FUTURES)
        store.save_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unlisted_symbol_is_manual_spot(self, watchlist, market_data) -> None:
        record = await watchlist.add(ListType.SHORT, "newcoin")

        assert record.symbol == "NEWCOINUSDT"
        assert record.display_name == "NEWCOIN"
        assert record.market == Market.SPOT
        assert record.is_exchange_listed is False
        assert record.current_price == Decimal("0")
        assert record.trend is None
        market_data.get_24h_ticker.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unavailable_quote_skips_trend(self, watchlist, market_data) -> None:
        market_data.get_24h_ticker.return_value = None

        record = await watchlist.add(ListType.LONG, "eth")

        assert record.current_price == Decimal("0")
        assert record.trend is None
        market_data.analyze_trend.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_in_same_list_raises(self, watchlist) -> None:
        await watchlist.add(ListType.LONG, "btc")
        with pytest.raises(DuplicateTickerError):
            await watchlist.add(ListType.LONG, "BTCUSDT")

    @pytest.mark.asyncio
    async def test_concurrent_adds_of_same_symbol_keep_one(self, watchlist, market_data) -> None:
        async def slow_ticker(symbol, market):
            await asyncio.sleep(0.01)
            return Ticker24h(symbol, Decimal("100"), Decimal("1"))

        market_data.get_24h_ticker.side_effect = slow_ticker

        results = await asyncio.gather(
            watchlist.add(ListType.LONG, "BTC"),
            watchlist.add(ListType.LONG, "btc"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, DuplicateTickerError) for r in results) == 1
        assert watchlist.stats()["long"] == 1
        assert watchlist.get(ListType.LONG, "BTCUSDT") in results

    @pytest.mark.asyncio
    async def test_oversized_quote_is_added_without_price(self, watchlist, market_data) -> None:
        market_data.get_24h_ticker.return_value = Ticker24h(
            "BTCUSDT", Decimal("1e25"), Decimal("1")
        )

        record = await watchlist.add(ListType.LONG, "btc")

        assert watchlist.get(ListType.LONG, "BTCUSDT") is record
        assert record.current_price == Decimal("0")
        assert record.percent_change_24h == Decimal("0")
        market_data.analyze_trend.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_symbol_allowed_in_other_list(self, watchlist) -> None:
        await watchlist.add(ListType.LONG, "btc")
        await watchlist.add(ListType.SHORT_WAIT, "btc")

        assert watchlist.stats() == {
            "long": 1,
            "short": 0,
            "long-wait": 0,
            "short-wait": 1,
            "total": 2,
        }

    @pytest.mark.asyncio
    async def test_without_store_is_memory_only(self, market_data) -> None:
        watchlist = Watchlist(market_data)
        await watchlist.add(ListType.LONG, "eth")
        await watchlist.load()
        assert watchlist.get(ListType.LONG, "ETHUSDT") is not None


class TestRemoveAndClear:
    @pytest.mark.asyncio
    async def test_remove(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth")
        await watchlist.remove(ListType.LONG, "BTCUSDT")
        assert [r.symbol for r in watchlist.records(ListType.LONG)] == ["ETHUSDT"]

    @pytest.mark.asyncio
    async def test_remove_missing_raises(self, watchlist) -> None:
        with pytest.raises(TickerNotFoundError):
            await watchlist.remove(ListType.LONG, "BTCUSDT")

    @pytest.mark.asyncio
    async def test_clear_returns_count(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth", "sol")
        assert await watchlist.clear(ListType.LONG) == 3
        assert watchlist.records(ListType.LONG) == []


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    @pytest.mark.asyncio
    async def test_move_up_and_down(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth", "sol")

        assert await watchlist.move(ListType.LONG, "SOLUSDT", "up") == [
            "BTCUSDT",
            "SOLUSDT",
            "ETHUSDT",
        ]
        assert await watchlist.move(ListType.LONG, "BTCUSDT", "down") == [
            "SOLUSDT",
            "BTCUSDT",
            "ETHUSDT",
        ]

    @pytest.mark.asyncio
    async def test_move_at_edge_is_noop(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth")

        assert await watchlist.move(ListType.LONG, "BTCUSDT", "up") == ["BTCUSDT", "ETHUSDT"]
        assert await watchlist.move(ListType.LONG, "ETHUSDT", "down") == ["BTCUSDT", "ETHUSDT"]

    @pytest.mark.asyncio
    async def test_move_bad_direction_raises(self, watchlist) -> None:
        await _fill(watchlist, "btc")
        with pytest.raises(ValueError):
            await watchlist.move(ListType.LONG, "BTCUSDT", "left")

    @pytest.mark.asyncio
    async def test_reorder(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth", "sol")

        await watchlist.reorder(ListType.LONG, ["ETHUSDT", "SOLUSDT", "BTCUSDT"])

        assert [r.symbol for r in watchlist.records(ListType.LONG)] == [
            "ETHUSDT",
            "SOLUSDT",
            "BTCUSDT",
        ]

    @pytest.mark.asyncio
    async def test_reorder_requires_permutation(self, watchlist) -> None:
        await _fill(watchlist, "btc", "eth")
        with pytest.raises(ValueError):
            await watchlist.reorder(ListType.LONG, ["BTCUSDT"])
        with pytest.raises(ValueError):
            await watchlist.reorder(ListType.LONG, ["BTCUSDT", "XRPUSDT"])


# ---------------------------------------------------------------------------
# Annotations
# ---------------------------------------------------------------------------


class TestAnnotations:
    @pytest.mark.asyncio
    async def test_rating_toggles_off(self, watchlist) -> None:
        await _fill(watchlist, "btc")

        assert await watchlist.rate(ListType.LONG, "BTCUSDT", 2) == 2
        assert await watchlist.rate(ListType.LONG, "BTCUSDT", 3) == 3
        assert await watchlist.rate(ListType.LONG, "BTCUSDT", 3) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 4, -1])
    async def test_rating_out_of_range(self, watchlist, rating: int) -> None:
        await _fill(watchlist, "btc")
        with pytest.raises(InvalidRatingError):
            await watchlist.rate(ListType.LONG, "BTCUSDT", rating)

    @pytest.mark.asyncio
    async def test_comment_is_stripped(self, watchlist) -> None:
        await _fill(watchlist, "btc")
        await watchlist.set_comment(ListType.LONG, "BTCUSDT", "  wait for retest  ")
        assert watchlist.get(ListType.LONG, "BTCUSDT").comment == "wait for retest"

    @pytest.mark.asyncio
    async def test_manual_price_is_rounded(self, watchlist) -> None:
        await watchlist.add(ListType.LONG, "newcoin")

        record = await watchlist.set_manual_price(
            ListType.LONG, "NEWCOINUSDT", Decimal("0.0000125"), Decimal("3.455")
        )

        assert record.current_price == Decimal("0.000013")
        assert record.percent_change_24h == Decimal("3.46")

    @pytest.mark.asyncio
    async def test_manual_price_too_large_raises(self, watchlist) -> None:
        await watchlist.add(ListType.LONG, "newcoin")

        with pytest.raises(ValueError):
            await watchlist.set_manual_price(ListType.LONG, "NEWCOINUSDT", Decimal("1e30"))
        assert watchlist.get(ListType.LONG, "NEWCOINUSDT").current_price == Decimal("0")

    @pytest.mark.asyncio
    async def test_to_dict_groups_by_list(self, watchlist) -> None:
        await _fill(watchlist, "btc")
        data = watchlist.to_dict()

        assert set(data) == {"long", "short", "long-wait", "short-wait"}
        assert data["long"][0]["symbol"] == "BTCUSDT"
        assert data["long"][0]["trend"] == {"direction": "up", "confidence": 78}


class TestApplyQuote:
    @pytest.mark.asyncio
    async def test_changed_quote_updates(self, watchlist) -> None:
        await _fill(watchlist, "btc")

        changed = watchlist.apply_quote(
            ListType.LONG, "BTCUSDT", Decimal("65000"), Decimal("1.5")
        )

        assert changed is True
        record = watchlist.get(ListType.LONG, "BTCUSDT")
        assert record.current_price == Decimal("65000.000000")
        assert record.percent_change_24h == Decimal("1.50")

    @pytest.mark.asyncio
    async def test_same_quote_after_rounding_is_unchanged(self, watchlist) -> None:
        await _fill(watchlist, "btc")

        assert (
            watchlist.apply_quote(
                ListType.LONG, "BTCUSDT", Decimal("64250.12345701"), Decimal("-1.2351")
            )
            is False
        )

    def test_missing_record_is_ignored(self, watchlist) -> None:
        assert watchlist.apply_quote(ListType.LONG, "BTCUSDT", Decimal("1"), Decimal("0")) is False
