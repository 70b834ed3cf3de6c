"""Entry point for the ticker watchlist dashboard.

Wires all components together and serves the FastAPI dashboard with uvicorn.
Core state (connection state, catalog, history cache, watchlist) lives on the
component instances built here and is handed to route handlers via
``app.state``.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. ExchangeClient (BinanceClient)
4. ConnectivityMonitor (health checks with bounded retry)
5. MarketDataService (catalog, prices, cached history, trends)
6. WatchlistDatabase + WatchlistStore (SQLite persistence)
7. Watchlist (the four buckets)
8. PriceRefresher (10 s fire-and-forget refresh)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from tickerboard.config import AppSettings
from tickerboard.exchange.binance_client import BinanceClient
from tickerboard.logging import get_logger, setup_logging
from tickerboard.market_data.connectivity import ConnectivityMonitor
from tickerboard.market_data.service import MarketDataService
from tickerboard.watchlist.database import WatchlistDatabase
from tickerboard.watchlist.manager import Watchlist
from tickerboard.watchlist.refresher import PriceRefresher
from tickerboard.watchlist.store import WatchlistStore


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT touch the network or the database; connecting happens in the
    lifespan.
    """
    exchange_client = BinanceClient(settings.exchange)
    monitor = ConnectivityMonitor(exchange_client, settings.connectivity)
    market_data = MarketDataService(
        exchange_client,
        settings.market_data,
        exchange_settings=settings.exchange,
        monitor=monitor,
    )
    database = WatchlistDatabase(settings.watchlist.db_path)
    watchlist = Watchlist(
        market_data,
        store=WatchlistStore(database),
        quote_asset=settings.exchange.quote_asset,
    )
    refresher = PriceRefresher(
        watchlist,
        market_data,
        interval=settings.watchlist.refresh_interval,
    )

    return {
        "exchange_client": exchange_client,
        "connectivity_monitor": monitor,
        "market_data": market_data,
        "database": database,
        "watchlist": watchlist,
        "refresher": refresher,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: initial health check, periodic monitor, catalog load,
    watchlist load, price refresher. On shutdown: the same in reverse.
    """
    logger = get_logger("tickerboard.main")
    components = app.state.components

    monitor: ConnectivityMonitor = components["connectivity_monitor"]
    app.state.connectivity_monitor = monitor
    app.state.market_data = components["market_data"]
    app.state.watchlist = components["watchlist"]

    monitor.add_listener(app.state.hub.on_connection_state_changed)

    await components["database"].connect()
    await monitor.check_connection()
    await monitor.start()
    await components["market_data"].fetch_instrument_catalog()
    await components["watchlist"].load()
    await components["refresher"].start()

    logger.info("lifespan_started", connected=monitor.is_available())

    try:
        yield
    finally:
        await components["refresher"].stop()
        await monitor.stop()
        await components["exchange_client"].close()
        await components["database"].close()
        logger.info("tickerboard_stopped")


async def run() -> None:
    """Run the dashboard server on a single asyncio event loop."""
    from tickerboard.dashboard.app import create_dashboard_app

    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("tickerboard.main")

    app = create_dashboard_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = _build_components(settings)

    logger.info(
        "starting_dashboard",
        host=settings.dashboard.host,
        port=settings.dashboard.port,
    )

    config = uvicorn.Config(
        app,
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
