"""Binance exchange client implementation via ccxt async.

Uses the raw implicit endpoint methods of ccxt.async_support.binance so the
payloads keep Binance's own schema. Spot endpoints live under ``/api/v3``
(``public_get_*``) and USDT-M futures under ``/fapi/v1`` (``fapipublic_get_*``).

Every call goes through ``_request``, the single timeout primitive: a call
that does not finish within ``request_timeout_ms`` is cancelled and raised as
RequestTimeoutError, and ccxt errors are mapped onto the MarketDataError
taxonomy.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import ccxt.async_support as ccxt_async

from tickerboard.config import ExchangeSettings
from tickerboard.exceptions import (
    HttpStatusError,
    MalformedPayloadError,
    NetworkUnreachableError,
    RequestTimeoutError,
)
from tickerboard.exchange.client import ExchangeClient
from tickerboard.logging import get_logger
from tickerboard.models import Market

logger = get_logger(__name__)

_ENDPOINT_PREFIX = {
    Market.SPOT: "public_get_",
    Market.FUTURES: "fapipublic_get_",
}


class BinanceClient(ExchangeClient):
    """Concrete Binance public-data client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        self._timeout = settings.request_timeout_ms / 1000
        self._exchange = ccxt_async.binance(
            {
                "enableRateLimit": True,
                "timeout": settings.request_timeout_ms,
            }
        )

    @property
    def exchange(self) -> ccxt_async.binance:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_binance_connection")
        await self._exchange.close()
        logger.info("binance_connection_closed")

    async def ping(self) -> None:
        await self._call(Market.SPOT, "ping")

    async def fetch_exchange_info(self, market: Market) -> dict:
        payload = await self._call(market, "exchangeinfo")
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"exchangeInfo ({market.value}) is not an object")
        return payload

    async def fetch_ticker_price(self, symbol: str, market: Market) -> dict:
        payload = await self._call(market, "ticker_price", {"symbol": symbol})
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"ticker/price for {symbol} is not an object")
        return payload

    async def fetch_ticker_24hr(self, symbol: str, market: Market) -> dict:
        payload = await self._call(market, "ticker_24hr", {"symbol": symbol})
        if not isinstance(payload, dict):
            raise MalformedPayloadError(f"ticker/24hr for {symbol} is not an object")
        return payload

    async def fetch_klines(
        self,
        symbol: str,
        market: Market,
        interval: str,
        limit: int,
    ) -> list[list]:
        payload = await self._call(
            market,
            "klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        if not isinstance(payload, list):
            raise MalformedPayloadError(f"klines for {symbol} is not a list")
        return payload

    async def _call(self, market: Market, name: str, params: dict | None = None) -> Any:
        method = getattr(self._exchange, _ENDPOINT_PREFIX[market] + name)
        return await self._request(f"{market.value}:{name}", method, params or {})

    async def _request(
        self,
        endpoint: str,
        method: Callable[[dict], Awaitable[Any]],
        params: dict,
    ) -> Any:
        """Run one endpoint call under the shared timeout, mapping ccxt errors."""
        try:
            return await asyncio.wait_for(method(params), timeout=self._timeout)
        except (asyncio.TimeoutError, ccxt_async.RequestTimeout) as exc:
            logger.debug("binance_request_timeout", endpoint=endpoint)
            raise RequestTimeoutError(
                f"{endpoint} timed out after {self._settings.request_timeout_ms}ms"
            ) from exc
        except (ccxt_async.ExchangeNotAvailable, ccxt_async.DDoSProtection) as exc:
            # 5xx and 418/429 answers
            raise HttpStatusError(str(exc) or endpoint) from exc
        except ccxt_async.NetworkError as exc:
            raise NetworkUnreachableError(str(exc) or endpoint) from exc
        except ccxt_async.ExchangeError as exc:
            # 4xx answers such as an unknown symbol
            raise HttpStatusError(str(exc) or endpoint) from exc
        except ccxt_async.BaseError as exc:
            raise MalformedPayloadError(str(exc) or endpoint) from exc
