"""Signal analysis module: trend classification over cached candle windows."""

from tickerboard.signals.trend import classify_candles, classify_trend, mean_close

__all__ = ["classify_candles", "classify_trend", "mean_close"]
