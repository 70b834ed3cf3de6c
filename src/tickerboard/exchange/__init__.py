"""Exchange client layer -- Binance public REST API integration via ccxt."""

from tickerboard.exchange.binance_client import BinanceClient
from tickerboard.exchange.client import ExchangeClient

__all__ = ["BinanceClient", "ExchangeClient"]
