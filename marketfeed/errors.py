"""
Error taxonomy for the market data core.

REST failures propagate to the caller with the exchange's own message intact.
Streaming failures never leave a stream session: they only drive its
reconnect logic.

Hierarchy:
    MarketFeedError
    ├── RemoteAPIError          exchange REST endpoint reported an error
    │   └── RateLimitError      HTTP 429 from the exchange
    ├── UnsupportedIntervalError  timeframe has no mapping on this exchange
    ├── RequestAbortedError     caller fired the abort signal mid-request
    └── TransportError          socket failure inside a stream session
"""

from typing import Iterable, Optional


class MarketFeedError(Exception):
    """Base class for all errors raised by this package."""

    pass


class RemoteAPIError(MarketFeedError):
    """
    Raised when an exchange REST endpoint returns a structured error.

    Attributes:
        exchange: Exchange identifier (e.g., "binance").
        message: Error text as reported by the exchange.
        status: HTTP status code, if known.

    Example:
        >>> err = RemoteAPIError("binance", "Invalid symbol.", status=400)
        >>> str(err)
        'binance API error: Invalid symbol.'
    """

    def __init__(self, exchange: str, message: str, status: Optional[int] = None):
        self.exchange = exchange
        self.message = message
        self.status = status
        super().__init__(f"{exchange} API error: {message}")


class RateLimitError(RemoteAPIError):
    """Raised when the exchange rate limit is exceeded."""

    def __init__(self, exchange: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            exchange, f"Rate limited, retry after {retry_after}s", status=429
        )


class UnsupportedIntervalError(MarketFeedError):
    """
    Raised when a timeframe has no native mapping on an exchange.

    The adapter never substitutes a different interval.
    """

    def __init__(self, exchange: str, interval: str, supported: Iterable[str] = ()):
        self.exchange = exchange
        self.interval = interval
        self.supported = tuple(supported)
        super().__init__(f"Interval not supported by {exchange}: {interval}")


class RequestAbortedError(MarketFeedError):
    """Raised when a request is abandoned because its abort signal fired."""

    def __init__(self, exchange: str, path: str):
        self.exchange = exchange
        self.path = path
        super().__init__(f"{exchange} request aborted: {path}")


class TransportError(MarketFeedError):
    """Socket-level failure inside a stream session. Never escapes connect()."""

    pass
