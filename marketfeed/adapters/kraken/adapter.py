"""
Kraken exchange adapter.

Implements ExchangeAdapter for Kraken spot markets:
    - Symbols from /0/public/AssetPairs (wsname quoted in USDT, USD or USDC)
    - Candles from /0/public/OHLC (quote volume approximated from VWAP)
    - Book snapshots from /0/public/Depth
    - Streaming over the v1 public socket (book, ohlc, trade)

Symbol Mapping:
    btc-usdt  -> XBT/USDT   (WebSocket wsname)
    btc-usdt  -> XBTUSDT    (REST altname)
    doge-usd  -> XDG/USD

fetch_all_symbols() builds the canonical <-> wsname and canonical -> altname
tables from AssetPairs. Before it has run, symbols are translated by
swapping asset aliases.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

import structlog

from marketfeed.adapters.kraken.normalizer import (
    KrakenNormalizer,
    to_common_asset,
    to_kraken_asset,
)
from marketfeed.adapters.kraken.stream import KrakenStreamProtocol
from marketfeed.adapters.rest import RestClient
from marketfeed.config.models import DEFAULT_EXCHANGES, ExchangeConfig
from marketfeed.connection.session import Sleep, StreamSession
from marketfeed.connection.transport import TransportFactory
from marketfeed.errors import RemoteAPIError, UnsupportedIntervalError
from marketfeed.interfaces.exchange_adapter import ExchangeAdapter
from marketfeed.models.candle import Candle
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.stream import MessageHandler
from marketfeed.symbols import USD_QUOTES, is_listed_pair, make_symbol, split_symbol

logger = structlog.get_logger(__name__)

# Canonical interval -> OHLC interval in minutes
INTERVAL_MAP: Dict[str, int] = {
    "1m": 1,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
    "1w": 10080,
}

# Dark-pool pairs carry a ".d" suffix in their wsname
VARIANT_MARKERS: Tuple[str, ...] = (".d", "_")


class KrakenAdapter(ExchangeAdapter):
    """
    Kraken exchange adapter implementing ExchangeAdapter interface.

    Example:
        >>> adapter = KrakenAdapter()
        >>> await adapter.fetch_all_symbols()
        >>> adapter.format_api_symbol("btc-usdt")
        'XBT/USDT'
    """

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        rest_client: Optional[RestClient] = None,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize Kraken adapter.

        Args:
            config: Exchange configuration (defaults to the built-in one).
            rest_client: Optional pre-built REST client.
            transport_factory: Optional WebSocket factory for stream sessions.
            sleep: Optional sleep used by stream sessions.
        """
        self._config = config or DEFAULT_EXCHANGES["kraken"]
        self._rest = rest_client or RestClient(
            exchange="kraken",
            base_url=self._config.rest_url,
            error_parser=KrakenNormalizer.parse_error,
            rate_limit_per_second=self._config.connection.rate_limit_per_second,
            timeout_seconds=self._config.connection.timeout_seconds,
        )
        self._transport_factory = transport_factory
        self._sleep = sleep

        # Lookup tables filled by fetch_all_symbols()
        self._wsnames: Dict[str, str] = {}
        self._pairs: Dict[str, str] = {}
        self._altnames: Dict[str, str] = {}

        logger.info("kraken_adapter_initialized", rest_url=self._config.rest_url)

    @property
    def name(self) -> str:
        """Return exchange identifier."""
        return "kraken"

    @property
    def supported_intervals(self) -> Tuple[str, ...]:
        return tuple(INTERVAL_MAP)

    def format_api_symbol(self, symbol: str) -> str:
        """
        Convert canonical symbol to a Kraken wsname.

        Example:
            >>> adapter.format_api_symbol("doge-usd")
            'XDG/USD'
        """
        cached = self._wsnames.get(symbol.lower())
        if cached is not None:
            return cached
        base, quote = split_symbol(symbol.lower())
        return f"{to_kraken_asset(base)}/{to_kraken_asset(quote)}"

    def format_pair(self, api_symbol: str) -> str:
        """
        Convert a Kraken wsname to canonical format.

        Example:
            >>> adapter.format_pair("XBT/USDT")
            'btc-usdt'
        """
        cached = self._pairs.get(api_symbol)
        if cached is not None:
            return cached
        base, quote = KrakenNormalizer.split_wsname(api_symbol)
        return make_symbol(base, quote)

    def rest_symbol(self, symbol: str) -> str:
        """Pair name for REST queries (the altname, e.g. XBTUSDT)."""
        cached = self._altnames.get(symbol.lower())
        if cached is not None:
            return cached
        return self.format_api_symbol(symbol).replace("/", "")

    def _native_interval(self, interval: str) -> int:
        minutes = INTERVAL_MAP.get(interval)
        if minutes is None:
            raise UnsupportedIntervalError(self.name, interval, INTERVAL_MAP)
        return minutes

    async def fetch_all_symbols(self, abort: Optional[asyncio.Event] = None) -> List[str]:
        """List pairs quoted in USDT, USD or USDC, excluding dark-pool pairs."""
        payload = await self._rest.get("/0/public/AssetPairs", abort=abort)

        wsnames: Dict[str, str] = {}
        altnames: Dict[str, str] = {}
        try:
            for info in payload["result"].values():
                wsname = info.get("wsname")
                if not wsname or "/" not in wsname:
                    continue
                base, quote = KrakenNormalizer.split_wsname(wsname)
                if not is_listed_pair(base, quote, wsname, USD_QUOTES, VARIANT_MARKERS):
                    continue
                symbol = make_symbol(base, quote)
                wsnames[symbol] = wsname
                altnames[symbol] = info.get("altname") or wsname.replace("/", "")
        except (KeyError, TypeError, AttributeError) as e:
            raise RemoteAPIError(self.name, f"Malformed AssetPairs payload: missing {e}") from e

        self._wsnames = wsnames
        self._pairs = {wsname: symbol for symbol, wsname in wsnames.items()}
        self._altnames = altnames

        symbols = sorted(wsnames)
        logger.info("kraken_symbols_fetched", count=len(symbols))
        return symbols

    async def fetch_klines(self, symbol: str, interval: str) -> List[Candle]:
        """Fetch the newest ``kline_limit`` candles, oldest first."""
        minutes = self._native_interval(interval)

        payload = await self._rest.get(
            "/0/public/OHLC",
            {"pair": self.rest_symbol(symbol), "interval": minutes},
        )

        try:
            rows = KrakenNormalizer.result_entry(payload)
            candles = KrakenNormalizer.normalize_ohlc(rows, limit=self._config.streams.kline_limit)
        except ValueError as e:
            raise RemoteAPIError(self.name, str(e)) from e

        logger.debug("kraken_klines_fetched", symbol=symbol, interval=minutes, count=len(candles))
        return candles

    async def fetch_order_book_snapshot(self, symbol: str) -> OrderBookSnapshot:
        """Fetch top-of-book levels via /0/public/Depth."""
        depth = self._config.streams.orderbook_depth
        payload = await self._rest.get(
            "/0/public/Depth",
            {"pair": self.rest_symbol(symbol), "count": depth},
        )

        try:
            entry = KrakenNormalizer.result_entry(payload)
            return KrakenNormalizer.normalize_depth(entry, depth=depth)
        except ValueError as e:
            raise RemoteAPIError(self.name, str(e)) from e

    def open_session(self, symbol: str, interval: str, handler: MessageHandler) -> StreamSession:
        """
        Start a v1 public-socket session and return it.

        Raises:
            UnsupportedIntervalError: If the interval has no mapping.
        """
        minutes = self._native_interval(interval)
        if not self._config.websocket_url:
            raise RuntimeError("kraken websocket_url is not configured")

        protocol = KrakenStreamProtocol(
            url=self._config.websocket_url,
            wsname=self.format_api_symbol(symbol),
            interval_minutes=minutes,
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
