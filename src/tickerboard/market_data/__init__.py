"""Market data layer -- connectivity monitoring, catalog, prices and cached history."""

from tickerboard.market_data.connectivity import ConnectivityMonitor
from tickerboard.market_data.history_cache import PriceHistoryCache
from tickerboard.market_data.service import MarketDataService

__all__ = ["ConnectivityMonitor", "MarketDataService", "PriceHistoryCache"]
