"""Test candle, trade and stream message models."""

from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError

from marketfeed.models import (
    Candle,
    DepthMessage,
    KlineMessage,
    StreamMessage,
    Trade,
    TradeMessage,
    TradeSide,
    to_decimal,
)


class TestToDecimal:
    """Test numeric parsing of exchange values."""

    def test_float_goes_through_str(self) -> None:
        """Test that floats keep their short decimal form."""
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value: object) -> None:
        """Test that non-finite and non-numeric values are rejected."""
        with pytest.raises(ValueError):
            to_decimal(value)


class TestTrade:
    """Test trade side conventions."""

    def test_buyer_maker_is_taker_sell(self) -> None:
        """Test that a buyer-maker trade counts as negative flow."""
        # Given: A trade where the resting order was a buy
        trade = Trade(
            price=Decimal("100"),
            quantity=Decimal("2"),
            time_ms=1_700_000_000_000,
            is_buyer_maker=True,
        )

        # Then: The taker sold
        assert trade.side == TradeSide.SELL
        assert trade.quote_volume == Decimal("200")
        assert trade.signed_quote_volume == Decimal("-200")

    def test_taker_buy_is_positive_flow(self) -> None:
        """Test that a taker buy counts as positive flow."""
        trade = Trade(
            price=Decimal("100"),
            quantity=Decimal("1"),
            time_ms=0,
            is_buyer_maker=False,
        )

        assert trade.side == TradeSide.BUY
        assert trade.signed_quote_volume == Decimal("100")

    def test_zero_price_rejected(self) -> None:
        """Test that a trade needs a positive price."""
        with pytest.raises(ValidationError):
            Trade(price=Decimal("0"), quantity=Decimal("1"), time_ms=0, is_buyer_maker=False)


class TestStreamMessage:
    """Test the discriminated stream message union."""

    def test_type_selects_variant(self) -> None:
        """Test that the type field picks the message class."""
        # Given: A type adapter for the union
        adapter = TypeAdapter(StreamMessage)

        # When: Validating raw dicts of each type
        kline = adapter.validate_python(
            {
                "type": "kline",
                "exchange": "binance",
                "stream": "btcusdt@kline_1m",
                "data": {"time": 60, "open": "1", "high": "2", "low": "1", "close": "2"},
            }
        )
        depth = adapter.validate_python(
            {
                "type": "depth",
                "exchange": "okx",
                "stream": "books",
                "data": {"bids": [], "asks": []},
            }
        )
        trade = adapter.validate_python(
            {
                "type": "trade",
                "exchange": "kraken",
                "stream": "trade",
                "data": {"price": "1", "quantity": "1", "time_ms": 1, "is_buyer_maker": False},
            }
        )

        # Then: Each lands in its own variant
        assert isinstance(kline, KlineMessage)
        assert isinstance(kline.data, Candle)
        assert kline.data.value == Decimal("0")
        assert isinstance(depth, DepthMessage)
        assert isinstance(trade, TradeMessage)

    def test_unknown_type_rejected(self) -> None:
        """Test that an unknown discriminator fails validation."""
        with pytest.raises(ValidationError):
            TypeAdapter(StreamMessage).validate_python(
                {"type": "ticker", "exchange": "binance", "stream": "x", "data": {}}
            )
