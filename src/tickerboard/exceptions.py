"""Custom exceptions for the ticker watchlist dashboard.

Market data failures are raised by the exchange client and absorbed by the
core services, which turn them into ``None``/``False`` results. Watchlist
errors propagate to the dashboard routes and become 4xx responses.
"""


class TickerboardError(Exception):
    """Base exception for all tickerboard errors."""


class MarketDataError(TickerboardError):
    """Base class for upstream exchange API failures."""


class RequestTimeoutError(MarketDataError):
    """Raised when a request does not complete within the configured timeout."""


class HttpStatusError(MarketDataError):
    """Raised when the exchange answers with a non-success HTTP status."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedPayloadError(MarketDataError):
    """Raised when a response does not match the expected schema."""


class NetworkUnreachableError(MarketDataError):
    """Raised when the exchange cannot be reached at all."""


class WatchlistError(TickerboardError):
    """Base class for rejected watchlist mutations."""


class InvalidSymbolError(WatchlistError):
    """Raised when a ticker symbol is empty after normalization."""


class DuplicateTickerError(WatchlistError):
    """Raised when a ticker is already present in the target list."""


class TickerNotFoundError(WatchlistError):
    """Raised when a ticker is not present in the target list."""


class InvalidRatingError(WatchlistError):
    """Raised when a star rating is outside the 1-3 range."""
