"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance public REST API settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    request_timeout_ms: int = 10_000  # abort any single request after this
    quote_asset: str = "USDT"  # catalog keeps only symbols quoted in this asset


class ConnectivitySettings(BaseSettings):
    """Health-check and reconnect behaviour of the ConnectivityMonitor."""

    model_config = SettingsConfigDict(env_prefix="CONNECTIVITY_")

    max_retries: int = 3
    reconnect_interval: float = 5.0  # seconds before the single delayed retry
    health_check_interval: float = 30.0  # seconds between periodic re-checks
    # Start a fresh retry episode when the periodic driver re-checks after a
    # fatal failure. Off by default: the retry count keeps growing.
    reset_retries_on_periodic: bool = False


class MarketDataSettings(BaseSettings):
    """Candle history caching and trend classification parameters.

    All fields configurable via MARKET_DATA_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="MARKET_DATA_")

    history_ttl_seconds: float = 600.0  # 10 minutes
    default_window_days: int = 14
    max_kline_limit: int = 1000  # Binance hard cap per klines request

    # Trend classifier: dead-zone band around the mean and confidence scaling
    trend_band: Decimal = Decimal("0.05")
    confidence_scale: Decimal = Decimal("1000")


class WatchlistSettings(BaseSettings):
    """Watchlist persistence and price refresh configuration."""

    model_config = SettingsConfigDict(env_prefix="WATCHLIST_")

    db_path: str = "data/watchlist.db"
    refresh_interval: float = 10.0  # seconds between price refresh ticks


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" for machine-readable output (LOG_FORMAT)
    exchange: ExchangeSettings = ExchangeSettings()
    connectivity: ConnectivitySettings = ConnectivitySettings()
    market_data: MarketDataSettings = MarketDataSettings()
    watchlist: WatchlistSettings = WatchlistSettings()
    dashboard: DashboardSettings = DashboardSettings()
