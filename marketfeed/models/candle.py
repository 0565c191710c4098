"""
Candle (OHLC bar) data model.

Models:
    Candle: One fixed-interval OHLC bar plus quote-asset volume
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class Candle(BaseModel):
    """
    One fixed-interval OHLC bar.

    Candles fetched from history never change. The newest candle of a live
    stream is re-emitted with the same ``time`` and updated fields until its
    interval closes.

    Attributes:
        time: Interval start as a Unix timestamp in seconds.
        open: Opening price.
        high: Highest traded price in the interval.
        low: Lowest traded price in the interval.
        close: Last traded price in the interval.
        value: Traded volume in quote currency. Adapters whose exchange only
            reports base volume approximate it as base volume * VWAP (or close).

    Example:
        >>> candle = Candle(
        ...     time=1700000000,
        ...     open=Decimal("100"), high=Decimal("110"),
        ...     low=Decimal("95"), close=Decimal("105"),
        ...     value=Decimal("12500"),
        ... )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    time: int = Field(..., description="Interval start (Unix seconds)", ge=0)
    open: Decimal = Field(..., description="Open price", ge=Decimal("0"))
    high: Decimal = Field(..., description="High price", ge=Decimal("0"))
    low: Decimal = Field(..., description="Low price", ge=Decimal("0"))
    close: Decimal = Field(..., description="Close price", ge=Decimal("0"))
    value: Decimal = Field(
        default=Decimal("0"),
        description="Traded volume in quote currency",
        ge=Decimal("0"),
    )
