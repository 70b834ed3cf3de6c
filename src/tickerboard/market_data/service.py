"""Market data service -- catalog, prices, cached candle history and trends.

Every public method returns ``None`` (or the fallback catalog) on failure and
never raises: the exchange client's MarketDataError taxonomy is absorbed and
logged here. Callers treat ``None`` as "unavailable" and keep whatever they
displayed before.

Hot-path reads (price, 24h ticker, history misses) are skipped while the
ConnectivityMonitor reports the API unreachable. The catalog load is a
one-time startup call and always attempts the network.
"""

from decimal import Decimal, InvalidOperation

from tickerboard.config import ExchangeSettings, MarketDataSettings
from tickerboard.exceptions import MalformedPayloadError
from tickerboard.exchange.client import ExchangeClient
from tickerboard.logging import get_logger
from tickerboard.market_data.catalog import fallback_catalog, merge_entries, parse_exchange_info
from tickerboard.market_data.connectivity import ConnectivityMonitor
from tickerboard.market_data.history_cache import PriceHistoryCache
from tickerboard.models import (
    Candle,
    InstrumentCatalogEntry,
    Market,
    Ticker24h,
    TrendResult,
)
from tickerboard.signals.trend import classify_candles

logger = get_logger(__name__)

MIN_SEARCH_LENGTH = 2


def select_interval(window_days: int) -> str:
    """Pick the kline interval for a history window.

    <= 7 days -> hourly, <= 30 days -> 4-hourly, otherwise daily.
    """
    if window_days <= 7:
        return "1h"
    if window_days <= 30:
        return "4h"
    return "1d"


def kline_limit(window_days: int, max_limit: int = 1000) -> int:
    """Row limit for a history request: one row per hour, capped by the exchange."""
    return min(window_days * 24, max_limit)


def _to_decimal(raw: object, field: str) -> Decimal:
    """Parse an exchange numeric string, rejecting non-finite values."""
    if not isinstance(raw, (str, int, float)) or isinstance(raw, bool):
        raise MalformedPayloadError(f"{field} is not numeric: {raw!r}")
    try:
        value = Decimal(str(raw))
    except InvalidOperation as exc:
        raise MalformedPayloadError(f"{field} is not numeric: {raw!r}") from exc
    if not value.is_finite():
        raise MalformedPayloadError(f"{field} is not finite: {raw!r}")
    return value


def parse_kline(row: object) -> Candle:
    """Convert one raw kline row into a Candle."""
    if not isinstance(row, (list, tuple)) or len(row) < 7:
        raise MalformedPayloadError(f"kline row is not a 7+ field array: {row!r}")
    try:
        open_time = int(row[0])
        close_time = int(row[6])
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"kline row has bad timestamps: {row!r}") from exc
    return Candle(
        open_time=open_time,
        open=_to_decimal(row[1], "open"),
        high=_to_decimal(row[2], "high"),
        low=_to_decimal(row[3], "low"),
        close=_to_decimal(row[4], "close"),
        volume=_to_decimal(row[5], "volume"),
        close_time=close_time,
    )


class MarketDataService:
    """All network access to catalog, price and candle data.

    Owns the instrument catalog and the candle history cache. Built once at
    startup and shared with the dashboard and the price refresher.
    """

    def __init__(
        self,
        exchange: ExchangeClient,
        settings: MarketDataSettings,
        exchange_settings: ExchangeSettings | None = None,
        monitor: ConnectivityMonitor | None = None,
        history_cache: PriceHistoryCache | None = None,
    ) -> None:
        self._exchange = exchange
        self._settings = settings
        self._quote_asset = (exchange_settings or ExchangeSettings()).quote_asset
        self._monitor = monitor
        if history_cache is None:
            history_cache = PriceHistoryCache(ttl_seconds=settings.history_ttl_seconds)
        self._history_cache = history_cache
        self._catalog: dict[str, InstrumentCatalogEntry] = {}
        self._catalog_loaded = False

    @property
    def history_cache(self) -> PriceHistoryCache:
        return self._history_cache

    @property
    def catalog(self) -> dict[str, InstrumentCatalogEntry]:
        """The last loaded catalog (empty until ``fetch_instrument_catalog``)."""
        return self._catalog

    @property
    def catalog_loaded(self) -> bool:
        """True once a catalog (live or fallback) has been loaded."""
        return self._catalog_loaded

    def _api_available(self, operation: str, symbol: str) -> bool:
        if self._monitor is None or self._monitor.is_available():
            return True
        logger.debug("market_data_skipped_offline", operation=operation, symbol=symbol)
        return False

    # ──────────────────────────────────────────────
    # Catalog
    # ──────────────────────────────────────────────

    async def fetch_instrument_catalog(self) -> dict[str, InstrumentCatalogEntry]:
        """Load spot then futures instruments; futures win on shared symbols.

        Falls back to the built-in catalog when both requests fail. The result
        replaces the retained catalog wholesale.
        """
        catalog: dict[str, InstrumentCatalogEntry] = {}
        loaded_markets = []

        for market in (Market.SPOT, Market.FUTURES):
            try:
                payload = await self._exchange.fetch_exchange_info(market)
                entries = parse_exchange_info(payload, market, self._quote_asset)
            except Exception as exc:
                logger.warning(
                    "catalog_fetch_failed",
                    market=market.value,
                    error=str(exc),
                )
                continue
            merge_entries(catalog, entries)
            loaded_markets.append(market.value)

        if not loaded_markets:
            catalog = fallback_catalog()
            logger.warning("catalog_fallback_used", count=len(catalog))
        else:
            logger.info("catalog_loaded", count=len(catalog), markets=loaded_markets)

        self._catalog = catalog
        self._catalog_loaded = True
        return catalog

    def lookup(self, symbol: str) -> InstrumentCatalogEntry | None:
        """Return the catalog entry for a symbol, if listed."""
        return self._catalog.get(symbol)

    def search_catalog(self, query: str, limit: int = 10) -> list[InstrumentCatalogEntry]:
        """Return up to ``limit`` entries whose symbol contains ``query``.

        Queries shorter than two characters return nothing.
        """
        needle = query.strip().upper()
        if len(needle) < MIN_SEARCH_LENGTH:
            return []
        matches = [entry for symbol, entry in self._catalog.items() if needle in symbol]
        return matches[:limit]

    # ──────────────────────────────────────────────
    # Prices
    # ──────────────────────────────────────────────

    async def get_current_price(self, symbol: str, market: Market) -> Decimal | None:
        """Latest traded price, or None on any failure or malformed payload."""
        if not self._api_available("get_current_price", symbol):
            return None
        try:
            payload = await self._exchange.fetch_ticker_price(symbol, market)
            raw = payload.get("price")
            if not isinstance(raw, str):
                raise MalformedPayloadError(f"price field missing or not a string: {raw!r}")
            return _to_decimal(raw, "price")
        except Exception as exc:
            logger.warning(
                "price_fetch_failed",
                symbol=symbol,
                market=market.value,
                error=str(exc),
            )
            return None

    async def get_24h_ticker(self, symbol: str, market: Market) -> Ticker24h | None:
        """Last price and 24h percent change, or None on any failure."""
        if not self._api_available("get_24h_ticker", symbol):
            return None
        try:
            payload = await self._exchange.fetch_ticker_24hr(symbol, market)
            return Ticker24h(
                symbol=symbol,
                last_price=_to_decimal(payload.get("lastPrice"), "lastPrice"),
                price_change_percent=_to_decimal(
                    payload.get("priceChangePercent"), "priceChangePercent"
                ),
            )
        except Exception as exc:
            logger.warning(
                "ticker_24h_fetch_failed",
                symbol=symbol,
                market=market.value,
                error=str(exc),
            )
            return None

    # ──────────────────────────────────────────────
    # History and trend
    # ──────────────────────────────────────────────

    async def get_price_history(
        self,
        symbol: str,
        market: Market,
        window_days: int | None = None,
    ) -> list[Candle] | None:
        """Candle window for the last ``window_days`` days, served from cache when fresh.

        A cache hit returns the very list stored by the fetch that populated
        it, with no network call. Failures are not cached, so the next call
        retries immediately.
        """
        days = window_days if window_days is not None else self._settings.default_window_days

        cached = self._history_cache.get(symbol, market, days)
        if cached is not None:
            return cached

        if not self._api_available("get_price_history", symbol):
            return None

        interval = select_interval(days)
        limit = kline_limit(days, self._settings.max_kline_limit)
        try:
            rows = await self._exchange.fetch_klines(symbol, market, interval, limit)
            candles = [parse_kline(row) for row in rows]
        except Exception as exc:
            logger.warning(
                "price_history_fetch_failed",
                symbol=symbol,
                market=market.value,
                window_days=days,
                error=str(exc),
            )
            return None

        self._history_cache.store(symbol, market, days, candles)
        return candles

    async def analyze_trend(self, symbol: str, market: Market) -> TrendResult | None:
        """Classify the trend of the default history window.

        Returns None when the history is unavailable or has fewer than 2 candles.
        """
        history = await self.get_price_history(symbol, market)
        if not history:
            return None
        trend = classify_candles(
            history,
            band=self._settings.trend_band,
            confidence_scale=self._settings.confidence_scale,
        )
        if trend is not None:
            logger.debug(
                "trend_analyzed",
                symbol=symbol,
                market=market.value,
                direction=trend.direction.value,
                confidence=trend.confidence,
            )
        return trend
