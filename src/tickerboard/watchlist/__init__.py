"""Watchlist layer: the four ticker buckets, SQLite persistence and price refresh."""

from tickerboard.watchlist.database import WatchlistDatabase
from tickerboard.watchlist.manager import Watchlist, normalize_symbol
from tickerboard.watchlist.refresher import PriceRefresher
from tickerboard.watchlist.store import WatchlistStore

__all__ = [
    "PriceRefresher",
    "Watchlist",
    "WatchlistDatabase",
    "WatchlistStore",
    "normalize_symbol",
]
