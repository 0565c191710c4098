"""
Coinbase exchange adapter.

REST-only adapter for the public Coinbase Exchange API:
    - Symbols from /products (online, trading enabled, USDT/USD/USDC quotes)
    - Candles from /products/{id}/candles (newest first, reversed here)

Coinbase exposes no public unauthenticated order book or streaming feed that
fits this client, so:
    - fetch_order_book_snapshot() returns an empty book
    - connect() starts nothing and returns a no-op disconnect

Coinbase has no 4h granularity. Requests for it fail with
UnsupportedIntervalError rather than silently using 6h.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from marketfeed.adapters.coinbase.normalizer import CoinbaseNormalizer
from marketfeed.adapters.rest import RestClient
from marketfeed.config.models import DEFAULT_EXCHANGES, ExchangeConfig
from marketfeed.errors import RemoteAPIError, UnsupportedIntervalError
from marketfeed.interfaces.exchange_adapter import ExchangeAdapter
from marketfeed.models.candle import Candle
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.stream import MessageHandler
from marketfeed.symbols import USD_QUOTES, is_listed_pair, make_symbol

logger = structlog.get_logger(__name__)

# Canonical interval -> granularity in seconds
INTERVAL_MAP: Dict[str, int] = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "1h": 3600,
    "6h": 21600,
    "1d": 86400,
}


class CoinbaseAdapter(ExchangeAdapter):
    """
    Coinbase exchange adapter implementing ExchangeAdapter interface.

    Example:
        >>> adapter = CoinbaseAdapter()
        >>> candles = await adapter.fetch_klines("btc-usd", "1h")
        >>> (await adapter.fetch_order_book_snapshot("btc-usd")).is_empty
        True
    """

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        rest_client: Optional[RestClient] = None,
    ):
        """
        Initialize Coinbase adapter.

        Args:
            config: Exchange configuration (defaults to the built-in one).
            rest_client: Optional pre-built REST client.
        """
        self._config = config or DEFAULT_EXCHANGES["coinbase"]
        self._rest = rest_client or RestClient(
            exchange="coinbase",
            base_url=self._config.rest_url,
            error_parser=CoinbaseNormalizer.parse_error,
            rate_limit_per_second=self._config.connection.rate_limit_per_second,
            timeout_seconds=self._config.connection.timeout_seconds,
        )

        logger.info("coinbase_adapter_initialized", rest_url=self._config.rest_url)

    @property
    def name(self) -> str:
        """Return exchange identifier."""
        return "coinbase"

    @property
    def supported_intervals(self) -> Tuple[str, ...]:
        return tuple(INTERVAL_MAP)

    def format_api_symbol(self, symbol: str) -> str:
        """
        Convert canonical symbol to a Coinbase product ID.

        Example:
            >>> adapter.format_api_symbol("eth-usd")
            'ETH-USD'
        """
        return symbol.upper()

    def format_pair(self, api_symbol: str) -> str:
        return api_symbol.lower()

    def _granularity(self, interval: str) -> int:
        granularity = INTERVAL_MAP.get(interval)
        if granularity is None:
            raise UnsupportedIntervalError(self.name, interval, INTERVAL_MAP)
        return granularity

    async def fetch_all_symbols(self, abort: Optional[asyncio.Event] = None) -> List[str]:
        """List online, tradable products quoted in USDT, USD or USDC."""
        payload = await self._rest.get("/products", abort=abort)

        if not isinstance(payload, list):
            raise RemoteAPIError(self.name, "Expected an array of products")

        symbols = set()
        try:
            for product in payload:
                if product.get("trading_disabled") or product["status"] != "online":
                    continue
                base, quote = product["base_currency"], product["quote_currency"]
                if is_listed_pair(base, quote, product["id"], USD_QUOTES):
                    symbols.add(make_symbol(base, quote))
        except (KeyError, TypeError, AttributeError) as e:
            raise RemoteAPIError(self.name, f"Malformed products payload: missing {e}") from e

        result = sorted(symbols)
        logger.info("coinbase_symbols_fetched", count=len(result))
        return result

    async def fetch_klines(self, symbol: str, interval: str) -> List[Candle]:
        """Fetch up to 300 candles, oldest first."""
        granularity = self._granularity(interval)

        rows = await self._rest.get(
            f"/products/{self.format_api_symbol(symbol)}/candles",
            {"granularity": granularity},
        )

        try:
            candles = CoinbaseNormalizer.normalize_candles(rows)
        except ValueError as e:
            raise RemoteAPIError(self.name, str(e)) from e

        return candles[-self._config.streams.kline_limit:]

    async def fetch_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        """No public book endpoint is used; always an empty book."""
        return OrderBookSnapshot.empty()

    def connect(
        self,
        symbol: str,
        interval: str,
        handler: MessageHandler,
    ) -> Callable[[], None]:
        """
        Streaming is unavailable on Coinbase; nothing is started.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping.
        """
        self._granularity(interval)
        logger.info("streaming_disabled", exchange=self.name, symbol=symbol, interval=interval)

        def disconnect() -> None:
            return None

        return disconnect

    async def close(self) -> None:
        """Release the REST session."""
        await self._rest.close()
