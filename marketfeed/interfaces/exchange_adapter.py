"""
Abstract base class for exchange adapters.

This module defines the ExchangeAdapter interface that every exchange-specific
implementation (Binance, OKX, Kraken, Coinbase) follows, so the dashboard can
switch exchanges without knowing any wire format.

The adapter pattern allows the system to:
- Add new exchanges without modifying consumers
- Normalize data into unified schemas (Candle, OrderBookSnapshot, Trade)
- Keep symbol translation and protocol details inside each exchange package

The interface carries no shared behaviour: adapters differ in data, not in
control flow, so each one implements every method itself.

Example:
    >>> class BinanceAdapter(ExchangeAdapter):
    ...     @property
    ...     def name(self) -> str:
    ...         return "binance"
    ...     # ... implement other abstract methods
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

from marketfeed.models.candle import Candle
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.stream import MessageHandler


class ExchangeAdapter(ABC):
    """
    Abstract base class for exchange adapters.

    Defines the contract that all exchange-specific implementations must follow.

    The adapter is responsible for:
    - Translating canonical symbols (``btc-usdt``) to and from native ones
    - Fetching symbol lists, historical candles and order book snapshots
    - Opening streaming sessions that deliver normalized StreamMessages

    Attributes:
        name: Lowercase exchange identifier (e.g., "binance", "okx").
        supported_intervals: Canonical interval tokens with a native mapping.

    Note:
        All financial values in returned models use Decimal for precision.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Return the lowercase exchange identifier.

        This identifier is passed to stream handlers as ``exchange_name`` and
        used as the registry key.

        Returns:
            str: Lowercase exchange name (e.g., "binance", "okx").
        """
        pass

    @property
    @abstractmethod
    def supported_intervals(self) -> Tuple[str, ...]:
        """Canonical interval tokens (e.g., "1m", "1h") this exchange maps."""
        pass

    @abstractmethod
    def format_api_symbol(self, symbol: str) -> str:
        """
        Convert a canonical symbol to the exchange-native symbol.

        Pure string transform. Adapters that need a lookup table consult the
        table cached by fetch_all_symbols() first and fall back to a heuristic.

        Args:
            symbol: Canonical symbol (e.g., "btc-usdt").

        Returns:
            str: Native symbol (e.g., "BTCUSDT", "XBT/USDT").
        """
        pass

    @abstractmethod
    def format_pair(self, api_symbol: str) -> str:
        """
        Convert an exchange-native symbol back to canonical form.

        For every symbol returned by fetch_all_symbols():
        ``format_pair(format_api_symbol(s)) == s``.

        Args:
            api_symbol: Native symbol.

        Returns:
            str: Canonical symbol.
        """
        pass

    @abstractmethod
    async def fetch_all_symbols(self, abort: Optional[asyncio.Event] = None) -> List[str]:
        """
        List the canonical symbols this exchange offers.

        Only live spot instruments in an accepted quote asset are returned,
        excluding variant instruments and stablecoin-to-stablecoin pairs.

        Args:
            abort: Optional event; setting it abandons the request (used when
                the consumer switches exchange mid-fetch).

        Returns:
            List[str]: Sorted, duplicate-free canonical symbols.

        Raises:
            RemoteAPIError: If the exchange reports an error.
            RequestAbortedError: If ``abort`` fires before completion.
        """
        pass

    @abstractmethod
    async def fetch_klines(self, symbol: str, interval: str) -> List[Candle]:
        """
        Fetch historical candles, ascending by time.

        Returns at most the exchange's default window (<= 300 bars). ``value``
        is always quote-denominated volume.

        Args:
            symbol: Canonical symbol.
            interval: Canonical interval (e.g., "1m", "4h").

        Returns:
            List[Candle]: Candles ordered oldest to newest.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping. No
                request is made in that case.
            RemoteAPIError: If the exchange reports an error.
        """
        pass

    @abstractmethod
    async def fetch_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        """
        Fetch a one-shot order book snapshot via REST.

        Returns an empty book (not an error) when the exchange has no public
        unauthenticated order book endpoint.

        Args:
            symbol: Canonical symbol.

        Returns:
            OrderBookSnapshot: Sorted snapshot.

        Raises:
            RemoteAPIError: If the exchange reports an error.
        """
        pass

    @abstractmethod
    def connect(
        self,
        symbol: str,
        interval: str,
        handler: MessageHandler,
    ) -> Callable[[], None]:
        """
        Open a streaming session for one symbol and interval.

        Must be called from a running event loop. The session subscribes to
        the order book, kline and trade channels and calls
        ``handler(message, exchange_name)`` for every normalized event. It
        reconnects on its own after unexpected closes.

        The caller must invoke the previously returned disconnect function
        before opening a new session; adapters do not enforce this.

        Args:
            symbol: Canonical symbol.
            interval: Canonical interval.
            handler: Consumer callback.

        Returns:
            Callable[[], None]: Idempotent, synchronous disconnect function.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources. Open stream sessions are not affected."""
        pass

    def __repr__(self) -> str:
        """Return string representation of adapter."""
        return f"{self.__class__.__name__}(exchange={self.name})"
