"""
Binance exchange adapter.

Implements ExchangeAdapter for Binance spot markets:
    - Symbols from /api/v3/exchangeInfo (TRADING, USDT/USDC quotes)
    - Candles from /api/v3/klines (quote volume reported directly)
    - Book snapshots from /api/v3/depth
    - Streaming over one combined-stream connection (kline, depth20, aggTrade)

Symbol Mapping:
    btc-usdt <-> BTCUSDT

Binance native symbols carry no separator, so format_pair() uses the
base/quote table cached by fetch_all_symbols() and falls back to matching
known quote suffixes.

Example:
    >>> adapter = BinanceAdapter()
    >>> symbols = await adapter.fetch_all_symbols()
    >>> candles = await adapter.fetch_klines("btc-usdt", "1h")
    >>> disconnect = adapter.connect("btc-usdt", "1m", handler)
    >>> disconnect()
"""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from marketfeed.adapters.binance.normalizer import BinanceNormalizer
from marketfeed.adapters.binance.stream import BinanceStreamProtocol
from marketfeed.adapters.rest import RestClient
from marketfeed.config.models import DEFAULT_EXCHANGES, ExchangeConfig
from marketfeed.connection.session import Sleep, StreamSession
from marketfeed.connection.transport import TransportFactory
from marketfeed.errors import RemoteAPIError, UnsupportedIntervalError
from marketfeed.interfaces.exchange_adapter import ExchangeAdapter
from marketfeed.models.candle import Candle
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.stream import MessageHandler
from marketfeed.symbols import USD_STABLE_QUOTES, is_listed_pair, make_symbol

logger = structlog.get_logger(__name__)

# Binance accepts the canonical tokens natively
INTERVALS: Tuple[str, ...] = (
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
)

# Quote suffixes tried, in order, when no cached table entry exists
QUOTE_SUFFIXES: Tuple[str, ...] = ("USDT", "BUSD", "USDC", "TUSD")


class BinanceAdapter(ExchangeAdapter):
    """
    Binance exchange adapter implementing ExchangeAdapter interface.

    Example:
        >>> adapter = BinanceAdapter(config.get_exchange("binance"))
        >>> book = await adapter.fetch_order_book_snapshot("eth-usdt")
        >>> book.best_bid
        Decimal('2500.10')
    """

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        rest_client: Optional[RestClient] = None,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize Binance adapter.

        Args:
            config: Exchange configuration (defaults to the built-in one).
            rest_client: Optional pre-built REST client.
            transport_factory: Optional WebSocket factory for stream sessions.
            sleep: Optional sleep used by stream sessions between reconnects.
        """
        self._config = config or DEFAULT_EXCHANGES["binance"]
        self._rest = rest_client or RestClient(
            exchange="binance",
            base_url=self._config.rest_url,
            error_parser=BinanceNormalizer.parse_error,
            rate_limit_per_second=self._config.connection.rate_limit_per_second,
            timeout_seconds=self._config.connection.timeout_seconds,
        )
        self._transport_factory = transport_factory
        self._sleep = sleep

        # native -> canonical, filled by fetch_all_symbols()
        self._pairs: Dict[str, str] = {}

        logger.info("binance_adapter_initialized", rest_url=self._config.rest_url)

    @property
    def name(self) -> str:
        """Return exchange identifier."""
        return "binance"

    @property
    def supported_intervals(self) -> Tuple[str, ...]:
        return INTERVALS

    def format_api_symbol(self, symbol: str) -> str:
        """
        Convert canonical symbol to Binance format.

        Example:
            >>> adapter.format_api_symbol("btc-usdt")
            'BTCUSDT'
        """
        return symbol.replace("-", "").upper()

    def format_pair(self, api_symbol: str) -> str:
        """
        Convert Binance symbol to canonical format.

        Example:
            >>> adapter.format_pair("ETHUSDC")
            'eth-usdc'
        """
        cached = self._pairs.get(api_symbol.upper())
        if cached is not None:
            return cached

        upper = api_symbol.upper()
        for quote in QUOTE_SUFFIXES:
            if upper.endswith(quote) and len(upper) > len(quote):
                return make_symbol(upper[: -len(quote)], quote)
        return api_symbol.lower()

    def _check_interval(self, interval: str) -> str:
        if interval not in INTERVALS:
            raise UnsupportedIntervalError(self.name, interval, INTERVALS)
        return interval

    async def fetch_all_symbols(self, abort: Optional[asyncio.Event] = None) -> List[str]:
        """
        List TRADING spot pairs quoted in USDT or USDC.

        Also refreshes the native -> canonical table used by format_pair().
        """
        payload = await self._rest.get("/api/v3/exchangeInfo", abort=abort)

        try:
            instruments = payload["symbols"]
            pairs: Dict[str, str] = {}
            for info in instruments:
                native = info["symbol"]
                base, quote = info["baseAsset"], info["quoteAsset"]
                if info["status"] != "TRADING":
                    continue
                if not is_listed_pair(base, quote, native, USD_STABLE_QUOTES):
                    continue
                pairs[native] = make_symbol(base, quote)
        except (KeyError, TypeError) as e:
            raise RemoteAPIError(self.name, f"Malformed exchangeInfo payload: missing {e}") from e

        self._pairs = pairs
        symbols = sorted(set(pairs.values()))

        logger.info("binance_symbols_fetched", count=len(symbols))
        return symbols

    async def fetch_klines(self, symbol: str, interval: str) -> List[Candle]:
        """Fetch up to ``kline_limit`` candles, oldest first."""
        native_interval = self._check_interval(interval)

        rows = await self._rest.get(
            "/api/v3/klines",
            {
                "symbol": self.format_api_symbol(symbol),
                "interval": native_interval,
                "limit": self._config.streams.kline_limit,
            },
        )

        try:
            candles = BinanceNormalizer.normalize_klines(rows)
        except ValueError as e:
            raise RemoteAPIError(self.name, str(e)) from e

        logger.debug("binance_klines_fetched", symbol=symbol, interval=interval, count=len(candles))
        return candles

    async def fetch_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        """Fetch top-of-book levels via /api/v3/depth."""
        depth = self._config.streams.orderbook_depth
        payload = await self._rest.get(
            "/api/v3/depth",
            {"symbol": self.format_api_symbol(symbol), "limit": depth},
        )

        try:
            return BinanceNormalizer.normalize_depth(payload, depth=depth)
        except ValueError as e:
            raise RemoteAPIError(self.name, str(e)) from e

    def open_session(self, symbol: str, interval: str, handler: MessageHandler) -> StreamSession:
        """
        Start a combined-stream session and return it.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping.
            RuntimeError: If no event loop is running.
        """
        native_interval = self._check_interval(interval)
        if not self._config.websocket_url:
            raise RuntimeError("binance websocket_url is not configured")

        protocol = BinanceStreamProtocol(
            base_url=self._config.websocket_url,
            api_symbol=self.format_api_symbol(symbol),
            interval=native_interval,
            depth=self._config.streams.orderbook_depth,
        )
        session = StreamSession(
            protocol,
            handler,
            reconnect_delay=self._config.connection.reconnect_delay_seconds,
            transport_factory=self._transport_factory,
            sleep=self._sleep,
        )
        session.start()
        return session

    def connect(
        self,
        symbol: str,
        interval: str,
        handler: MessageHandler,
    ) -> Callable[[], None]:
        return self.open_session(symbol, interval, handler).disconnect

    async def close(self) -> None:
        """Release the REST session."""
        await self._rest.close()
