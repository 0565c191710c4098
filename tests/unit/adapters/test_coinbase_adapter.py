"""Test the REST-only Coinbase adapter."""

from decimal import Decimal

import pytest

from marketfeed.adapters.coinbase import CoinbaseAdapter
from marketfeed.errors import RemoteAPIError, UnsupportedIntervalError

PRODUCTS = [
    {"id": "BTC-USD", "base_currency": "BTC", "quote_currency": "USD", "status": "online", "trading_disabled": False},
    {"id": "ETH-USDT", "base_currency": "ETH", "quote_currency": "USDT", "status": "online", "trading_disabled": False},
    {"id": "USDT-USD", "base_currency": "USDT", "quote_currency": "USD", "status": "online", "trading_disabled": False},
    {"id": "OLD-USD", "base_currency": "OLD", "quote_currency": "USD", "status": "delisted", "trading_disabled": False},
    {"id": "HALT-USD", "base_currency": "HALT", "quote_currency": "USD", "status": "online", "trading_disabled": True},
    {"id": "ETH-EUR", "base_currency": "ETH", "quote_currency": "EUR", "status": "online", "trading_disabled": False},
]


class TestCoinbaseAdapter:
    """Test listing, candles and the disabled book and stream."""

    @pytest.mark.asyncio
    async def test_fetch_all_symbols(self, fake_rest_class) -> None:
        """Test the online, trading-enabled and USD-family filters."""
        adapter = CoinbaseAdapter(rest_client=fake_rest_class({"/products": PRODUCTS}))

        symbols = await adapter.fetch_all_symbols()

        assert symbols == ["btc-usd", "eth-usdt"]

    @pytest.mark.asyncio
    async def test_format_round_trip_after_listing(self, fake_rest_class) -> None:
        adapter = CoinbaseAdapter(rest_client=fake_rest_class({"/products": PRODUCTS}))

        for symbol in await adapter.fetch_all_symbols():
            assert adapter.format_pair(adapter.format_api_symbol(symbol)) == symbol

    @pytest.mark.asyncio
    async def test_products_must_be_a_list(self, fake_rest_class) -> None:
        adapter = CoinbaseAdapter(rest_client=fake_rest_class({"/products": {"products": []}}))

        with pytest.raises(RemoteAPIError, match="array"):
            await adapter.fetch_all_symbols()

    @pytest.mark.asyncio
    async def test_fetch_klines(self, fake_rest_class) -> None:
        """Test column order, reversal and quote volume from close."""
        # Given: Rows newest first as [time, low, high, open, close, volume]
        rows = [
            [1700003600, 104, 107, 105, 106, 2],
            [1700000000, 95, 110, 100, 105, 10],
        ]
        rest = fake_rest_class({"/products/BTC-USD/candles": rows})
        adapter = CoinbaseAdapter(rest_client=rest)

        # When: Fetching hourly candles
        candles = await adapter.fetch_klines("btc-usd", "1h")

        # Then: Ascending, with fields taken from the right columns
        assert rest.calls == [("/products/BTC-USD/candles", {"granularity": 3600})]
        assert [c.time for c in candles] == [1700000000, 1700003600]
        first = candles[0]
        assert (first.open, first.high, first.low, first.close) == (
            Decimal("100"),
            Decimal("110"),
            Decimal("95"),
            Decimal("105"),
        )
        assert first.value == Decimal("1050")

    @pytest.mark.asyncio
    async def test_four_hour_interval_unsupported(self, fake_rest_class) -> None:
        """Test that 4h is rejected rather than mapped to 6h."""
        rest = fake_rest_class({})
        adapter = CoinbaseAdapter(rest_client=rest)

        with pytest.raises(UnsupportedIntervalError):
            await adapter.fetch_klines("btc-usd", "4h")

        assert rest.calls == []

    @pytest.mark.asyncio
    async def test_order_book_is_empty(self, fake_rest_class) -> None:
        rest = fake_rest_class({})
        adapter = CoinbaseAdapter(rest_client=rest)

        book = await adapter.fetch_order_book_snapshot("btc-usd")

        assert book.is_empty
        assert rest.calls == []

    def test_connect_is_a_noop(self, fake_rest_class, handler, collected) -> None:
        adapter = CoinbaseAdapter(rest_client=fake_rest_class())

        disconnect = adapter.connect("btc-usd", "1m", handler)
        disconnect()
        disconnect()

        assert collected == []

    def test_connect_validates_interval(self, fake_rest_class, handler) -> None:
        adapter = CoinbaseAdapter(rest_client=fake_rest_class())

        with pytest.raises(UnsupportedIntervalError):
            adapter.connect("btc-usd", "4h", handler)

    @pytest.mark.asyncio
    async def test_close_releases_rest_client(self, fake_rest_class) -> None:
        rest = fake_rest_class()
        adapter = CoinbaseAdapter(rest_client=rest)

        await adapter.close()

        assert rest.closed is True
