"""
Streaming message envelope.

Every event a stream session delivers to its consumer is one of three
variants, discriminated by ``type``:

    kline  -> KlineMessage (data: Candle)
    depth  -> DepthMessage (data: OrderBookSnapshot)
    trade  -> TradeMessage (data: Trade)

The consumer callback receives the message and the origin exchange name:

    handler(message: StreamMessage, exchange_name: str) -> None

Consumers that may briefly run two sessions at once (e.g. while switching
exchanges) must filter on ``exchange_name``.
"""

from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, Field

from marketfeed.models.candle import Candle
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.trade import Trade


class _StreamEnvelope(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    exchange: str = Field(
        ...,
        description="Origin exchange identifier",
        min_length=1,
        examples=["binance", "okx"],
    )
    stream: str = Field(
        ...,
        description="Native stream or channel name",
        examples=["btcusdt@aggTrade", "books", "book-25"],
    )


class KlineMessage(_StreamEnvelope):
    """Newest candle for the subscribed interval."""

    type: Literal["kline"] = "kline"
    data: Candle


class DepthMessage(_StreamEnvelope):
    """Copy of the session's order book, truncated to the adapter's depth."""

    type: Literal["depth"] = "depth"
    data: OrderBookSnapshot


class TradeMessage(_StreamEnvelope):
    """Single trade from the tape."""

    type: Literal["trade"] = "trade"
    data: Trade


StreamMessage = Annotated[
    Union[KlineMessage, DepthMessage, TradeMessage],
    Field(discriminator="type"),
]

MessageHandler = Callable[[StreamMessage, str], None]
