"""Shared test fixtures for the ticker watchlist dashboard."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from tickerboard.config import (
    AppSettings,
    ConnectivitySettings,
    ExchangeSettings,
    MarketDataSettings,
)

HOUR_MS = 3_600_000


def make_kline(close: str | int | Decimal, open_time: int = 1_700_000_000_000) -> list:
    """Build a raw Binance kline row with the given close (index 4)."""
    return [
        open_time,
        str(close),
        str(close),
        str(close),
        str(close),
        "12.5",
        open_time + HOUR_MS - 1,
        "1000",
        42,
        "6.0",
        "500",
        "0",
    ]


def make_klines(closes: list) -> list[list]:
    """Raw kline rows for consecutive hours, oldest first."""
    start = 1_700_000_000_000
    return [make_kline(close, start + i * HOUR_MS) for i, close in enumerate(closes)]


SPOT_EXCHANGE_INFO = {
    "timezone": "UTC",
    "symbols": [
        {"symbol": "BTCUSDT", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
        {"symbol": "ETHUSDT", "status": "TRADING", "baseAsset": "ETH", "quoteAsset": "USDT"},
        {"symbol": "ETHBTC", "status": "TRADING", "baseAsset": "ETH", "quoteAsset": "BTC"},
        {"symbol": "LUNAUSDT", "status": "BREAK", "baseAsset": "LUNA", "quoteAsset": "USDT"},
    ],
}

FUTURES_EXCHANGE_INFO = {
    "timezone": "UTC",
    "symbols": [
        {"symbol": "BTCUSDT", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
        {"symbol": "1000PEPEUSDT", "status": "TRADING", "baseAsset": "1000PEPE", "quoteAsset": "USDT"},
        {"symbol": "BTCUSDT_250328", "status": "TRADING", "baseAsset": "BTC", "quoteAsset": "USDT"},
    ],
}


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(request_timeout_ms=500),
        connectivity=ConnectivitySettings(
            max_retries=3,
            reconnect_interval=60.0,
            health_check_interval=60.0,
        ),
        market_data=MarketDataSettings(),
    )


@pytest.fixture
def mock_exchange() -> AsyncMock:
    """Mock ExchangeClient answering every endpoint successfully."""

    async def exchange_info(market):
        return SPOT_EXCHANGE_INFO if market.value == "spot" else FUTURES_EXCHANGE_INFO

    exchange = AsyncMock()
    exchange.ping = AsyncMock(return_value=None)
    exchange.fetch_exchange_info = AsyncMock(side_effect=exchange_info)
    exchange.fetch_ticker_price = AsyncMock(
        return_value={"symbol": "BTCUSDT", "price": "64250.12000000"}
    )
    exchange.fetch_ticker_24hr = AsyncMock(
        return_value={
            "symbol": "BTCUSDT",
            "lastPrice": "64250.12000000",
            "priceChangePercent": "2.345",
        }
    )
    exchange.fetch_klines = AsyncMock(return_value=make_klines([100, 100, 100, 100, 110]))
    return exchange


@pytest.fixture
def spot_exchange_info() -> dict:
    return SPOT_EXCHANGE_INFO


@pytest.fixture
def futures_exchange_info() -> dict:
    return FUTURES_EXCHANGE_INFO


@pytest.fixture
def kline_rows():
    """Factory building raw kline rows from a list of closes."""
    return make_klines
