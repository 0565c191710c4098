"""Test the Binance adapter against canned REST payloads and fake streams."""

from decimal import Decimal

import pytest

from marketfeed.adapters.binance import BinanceAdapter
from marketfeed.adapters.binance.stream import BinanceStreamProtocol
from marketfeed.connection import SessionState
from marketfeed.errors import RemoteAPIError, UnsupportedIntervalError
from marketfeed.models import DepthMessage, KlineMessage, TradeMessage

EXCHANGE_INFO = {
    "symbols": [
        {"symbol": "BTCUSDT", "baseAsset": "BTC", "quoteAsset": "USDT", "status": "TRADING"},
        {"symbol": "ETHUSDC", "baseAsset": "ETH", "quoteAsset": "USDC", "status": "TRADING"},
        {"symbol": "USDCUSDT", "baseAsset": "USDC", "quoteAsset": "USDT", "status": "TRADING"},
        {"symbol": "LUNAUSDT", "baseAsset": "LUNA", "quoteAsset": "USDT", "status": "BREAK"},
        {"symbol": "ETHBTC", "baseAsset": "ETH", "quoteAsset": "BTC", "status": "TRADING"},
    ]
}

KLINES = [
    [1700000000000, "100", "110", "95", "105", "10", 1700000059999, "1050.5", 7, "5", "525", "0"],
    [1700000060000, "105", "106", "104", "106", "2", 1700000119999, "211", 3, "1", "106", "0"],
]


@pytest.fixture
def adapter_with(fake_rest_class, factory_class):
    """Build an adapter over a fake REST client and transport factory."""

    def _build(routes=None, *transports, sleep=None):
        rest = fake_rest_class(routes)
        factory = factory_class(*transports)
        return BinanceAdapter(rest_client=rest, transport_factory=factory, sleep=sleep), rest, factory

    return _build


class TestBinanceSymbols:
    """Test symbol listing and formatting."""

    @pytest.mark.asyncio
    async def test_fetch_all_symbols_filters(self, adapter_with) -> None:
        """Test that only trading, non-stable USDT/USDC pairs are listed."""
        # Given: exchangeInfo with mixed instruments
        adapter, rest, _ = adapter_with({"/api/v3/exchangeInfo": EXCHANGE_INFO})

        # When: Listing symbols
        symbols = await adapter.fetch_all_symbols()

        # Then: Halted, stable-stable and BTC-quoted pairs are excluded
        assert symbols == ["btc-usdt", "eth-usdc"]
        assert rest.calls == [("/api/v3/exchangeInfo", None)]

    @pytest.mark.asyncio
    async def test_format_round_trip_after_listing(self, adapter_with) -> None:
        adapter, _, _ = adapter_with({"/api/v3/exchangeInfo": EXCHANGE_INFO})
        symbols = await adapter.fetch_all_symbols()

        for symbol in symbols:
            assert adapter.format_pair(adapter.format_api_symbol(symbol)) == symbol

    def test_format_pair_without_table(self, adapter_with) -> None:
        adapter, _, _ = adapter_with()

        assert adapter.format_api_symbol("btc-usdt") == "BTCUSDT"
        assert adapter.format_pair("SOLUSDC") == "sol-usdc"

    @pytest.mark.asyncio
    async def test_malformed_exchange_info(self, adapter_with) -> None:
        adapter, _, _ = adapter_with({"/api/v3/exchangeInfo": {"unexpected": []}})

        with pytest.raises(RemoteAPIError, match="exchangeInfo"):
            await adapter.fetch_all_symbols()


class TestBinanceRest:
    """Test candles and order book snapshots."""

    @pytest.mark.asyncio
    async def test_fetch_klines(self, adapter_with) -> None:
        """Test request parameters and candle parsing."""
        adapter, rest, _ = adapter_with({"/api/v3/klines": KLINES})

        candles = await adapter.fetch_klines("btc-usdt", "1m")

        assert rest.calls == [
            ("/api/v3/klines", {"symbol": "BTCUSDT", "interval": "1m", "limit": 300})
        ]
        assert [c.time for c in candles] == [1700000000, 1700000060]
        assert candles[0].close == Decimal("105")
        assert candles[0].value == Decimal("1050.5")

    @pytest.mark.asyncio
    async def test_unsupported_interval_makes_no_request(self, adapter_with) -> None:
        adapter, rest, _ = adapter_with({})

        with pytest.raises(UnsupportedIntervalError):
            await adapter.fetch_klines("btc-usdt", "7m")

        assert rest.calls == []

    @pytest.mark.asyncio
    async def test_remote_error_propagates(self, adapter_with) -> None:
        error = RemoteAPIError("binance", "Invalid symbol.", status=400)
        adapter, _, _ = adapter_with({"/api/v3/klines": error})

        with pytest.raises(RemoteAPIError, match="Invalid symbol."):
            await adapter.fetch_klines("nope-usdt", "1h")

    @pytest.mark.asyncio
    async def test_malformed_kline_row(self, adapter_with) -> None:
        adapter, _, _ = adapter_with({"/api/v3/klines": [[1700000000000, "1"]]})

        with pytest.raises(RemoteAPIError):
            await adapter.fetch_klines("btc-usdt", "1m")

    @pytest.mark.asyncio
    async def test_fetch_order_book_snapshot(self, adapter_with) -> None:
        """Test that the REST book is sorted and limited to the depth."""
        payload = {
            "lastUpdateId": 1,
            "bids": [["99", "2"], ["100", "1"]],
            "asks": [["101", "1"], ["102", "0"]],
        }
        adapter, rest, _ = adapter_with({"/api/v3/depth": payload})

        book = await adapter.fetch_order_book_snapshot("btc-usdt")

        assert rest.calls == [("/api/v3/depth", {"symbol": "BTCUSDT", "limit": 20})]
        assert book.best_bid == Decimal("100")
        assert [level.price for level in book.asks] == [Decimal("101")]


class TestBinanceStream:
    """Test the combined-stream protocol and adapter connect."""

    def test_url_lists_all_streams(self) -> None:
        protocol = BinanceStreamProtocol("wss://stream.binance.com:9443/stream", "BTCUSDT", "1m")

        assert protocol.url() == (
            "wss://stream.binance.com:9443/stream?streams="
            "btcusdt@kline_1m/btcusdt@depth20@100ms/btcusdt@aggTrade"
        )
        assert protocol.subscribe_frames() == []

    def test_handle_each_stream(self) -> None:
        """Test that each envelope maps to its message variant."""
        protocol = BinanceStreamProtocol("wss://x/stream", "BTCUSDT", "1m")

        kline = protocol.handle(
            '{"stream": "btcusdt@kline_1m", "data": {"k": {"t": 1700000000000, '
            '"o": "1", "h": "2", "l": "0.5", "c": "1.5", "q": "30"}}}'
        )
        depth = protocol.handle(
            '{"stream": "btcusdt@depth20@100ms", "data": {"bids": [["1", "1"]], "asks": [["2", "1"]]}}'
        )
        trade = protocol.handle(
            '{"stream": "btcusdt@aggTrade", "data": {"p": "1.5", "q": "2", "T": 1700000000123, "m": true}}'
        )

        assert isinstance(kline[0], KlineMessage)
        assert kline[0].data.value == Decimal("30")
        assert isinstance(depth[0], DepthMessage)
        assert depth[0].data.spread == Decimal("1")
        assert isinstance(trade[0], TradeMessage)
        assert trade[0].data.is_buyer_maker is True

    def test_unknown_stream_ignored(self) -> None:
        protocol = BinanceStreamProtocol("wss://x/stream", "BTCUSDT", "1m")

        assert protocol.handle('{"stream": "btcusdt@ticker", "data": {}}') == []

    @pytest.mark.asyncio
    async def test_connect_delivers_and_disconnects(
        self, adapter_with, transport_class, handler, collected, wait_until
    ) -> None:
        """Test connect end to end over a fake transport."""
        # Given: A transport carrying one trade
        transport = transport_class(
            {"stream": "ethusdt@aggTrade", "data": {"p": "2500", "q": "1", "T": 1, "m": False}}
        )
        adapter, _, factory = adapter_with({}, transport)

        # When: Connecting
        disconnect = adapter.connect("eth-usdt", "1m", handler)
        await wait_until(lambda: len(collected) == 1)

        # Then: The trade arrives tagged with the exchange name
        message, exchange_name = collected[0]
        assert exchange_name == "binance"
        assert message.data.price == Decimal("2500")
        assert "ethusdt@aggTrade" in factory.urls[0]

        disconnect()
        disconnect()
        await wait_until(lambda: transport.closed)
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_open_session_rejects_interval(self, adapter_with, handler) -> None:
        adapter, _, factory = adapter_with({})

        with pytest.raises(UnsupportedIntervalError):
            adapter.open_session("btc-usdt", "2m", handler)

        assert factory.urls == []

    @pytest.mark.asyncio
    async def test_open_session_returns_running_session(
        self, adapter_with, transport_class, handler, wait_until
    ) -> None:
        adapter, _, _ = adapter_with({}, transport_class())

        session = adapter.open_session("btc-usdt", "1h", handler)
        await wait_until(lambda: session.state is SessionState.OPEN)

        session.disconnect()
        await session.wait_closed()
        assert session.state is SessionState.CLOSED
