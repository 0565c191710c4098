"""
OKX exchange adapter.

Implements ExchangeAdapter for OKX spot markets:
    - Symbols from /api/v5/public/instruments?instType=SPOT (live, USDT/USDC)
    - Candles from /api/v5/market/candles (newest first, reversed here)
    - Book snapshots from /api/v5/market/books
    - Streaming over the v5 public socket (books, candle<bar>, trades)

Instrument ID Mapping:
    btc-usdt <-> BTC-USDT

Interval Mapping:
    Hour and longer bars are upper-case on OKX (1h -> 1H, 1d -> 1D).
"""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from marketfeed.adapters.okx.normalizer import OKXNormalizer
from marketfeed.adapters.okx.stream import OKXStreamProtocol
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

INTERVAL_MAP: Dict[str, str] = {
    "1m": "1m",
    "3m": "3m",
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1H",
    "2h": "2H",
    "4h": "4H",
    "1d": "1D",
    "1w": "1W",
}


class OKXAdapter(ExchangeAdapter):
    """
    OKX exchange adapter implementing ExchangeAdapter interface.

    Example:
        >>> adapter = OKXAdapter()
        >>> candles = await adapter.fetch_klines("btc-usdt", "4h")
    """

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        rest_client: Optional[RestClient] = None,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize OKX adapter.

        Args:
            config: Exchange configuration (defaults to the built-in one).
            rest_client: Optional pre-built REST client.
            transport_factory: Optional WebSocket factory for stream sessions.
            sleep: Optional sleep used by stream sessions.
        """
        self._config = config or DEFAULT_EXCHANGES["okx"]
        self._rest = rest_client or RestClient(
            exchange="okx",
            base_url=self._config.rest_url,
            error_parser=OKXNormalizer.parse_error,
            rate_limit_per_second=self._config.connection.rate_limit_per_second,
            timeout_seconds=self._config.connection.timeout_seconds,
        )
        self._transport_factory = transport_factory
        self._sleep = sleep

        logger.info("okx_adapter_initialized", rest_url=self._config.rest_url)

    @property
    def name(self) -> str:
        """Return exchange identifier."""
        return "okx"

    @property
    def supported_intervals(self) -> Tuple[str, ...]:
        return tuple(INTERVAL_MAP)

    def format_api_symbol(self, symbol: str) -> str:
        """
        Convert canonical symbol to an OKX instrument ID.

        Example:
            >>> adapter.format_api_symbol("btc-usdt")
            'BTC-USDT'
        """
        return symbol.upper()

    def format_pair(self, api_symbol: str) -> str:
        return api_symbol.lower()

    def _native_interval(self, interval: str) -> str:
        bar = INTERVAL_MAP.get(interval)
        if bar is None:
            raise UnsupportedIntervalError(self.name, interval, INTERVAL_MAP)
        return bar

    async def fetch_all_symbols(self, abort: Optional[asyncio.Event] = None) -> List[str]:
        """List live SPOT instruments quoted in USDT or USDC."""
        payload = await self._rest.get(
            "/api/v5/public/instruments", {"instType": "SPOT"}, abort=abort
        )

        symbols = set()
        try:
            for info in payload["data"]:
                if info["state"] != "live":
                    continue
                base, quote, inst_id = info["baseCcy"], info["quoteCcy"], info["instId"]
                if is_listed_pair(base, quote, inst_id, USD_STABLE_QUOTES):
                    symbols.add(make_symbol(base, quote))
        except (KeyError, TypeError) as e:
            raise RemoteAPIError(self.name, f"Malformed instruments payload: missing {e}") from e

        result = sorted(symbols)
        logger.info("okx_symbols_fetched", count=len(result))
        return result

    async def fetch_klines(self, symbol: str, interval: str) -> List[Candle]:
        """Fetch up to ``kline_limit`` candles, oldest first."""
        bar = self._native_interval(interval)

        payload = await self._rest.get(
            "/api/v5/market/candles",
            {
                "instId": self.format_api_symbol(symbol),
                "bar": bar,
                "limit": self._config.streams.kline_limit,
            },
        )

        try:
            candles = OKXNormalizer.normalize_candles(payload["data"])
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteAPIError(self.name, f"Malformed candles payload: {e}") from e

        logger.debug("okx_klines_fetched", symbol=symbol, bar=bar, count=len(candles))
        return candles

    async def fetch_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        """Fetch top-of-book levels via /api/v5/market/books."""
        depth = self._config.streams.orderbook_depth
        payload = await self._rest.get(
            "/api/v5/market/books",
            {"instId": self.format_api_symbol(symbol), "sz": depth},
        )

        try:
            return OKXNormalizer.normalize_book(payload["data"], depth=depth)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteAPIError(self.name, f"Malformed books payload: {e}") from e

    def open_session(self, symbol: str, interval: str, handler: MessageHandler) -> StreamSession:
        """
        Start a public-socket session and return it.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping.
        """
        bar = self._native_interval(interval)
        if not self._config.websocket_url:
            raise RuntimeError("okx websocket_url is not configured")

        connection = self._config.connection
        protocol = OKXStreamProtocol(
            url=self._config.websocket_url,
            inst_id=self.format_api_symbol(symbol),
            bar=bar,
            depth=self._config.streams.orderbook_depth,
            keepalive_interval=connection.keepalive_interval_seconds or 25.0,
        )
        session = StreamSession(
            protocol,
            handler,
            reconnect_delay=connection.reconnect_delay_seconds,
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
