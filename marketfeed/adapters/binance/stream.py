"""
Binance combined-stream session protocol.

Binance subscribes through the URL, so no subscribe frames are sent:

    wss://stream.binance.com:9443/stream?streams=
        btcusdt@kline_1m/btcusdt@depth20@100ms/btcusdt@aggTrade

Every frame is a ``{"stream": ..., "data": ...}`` envelope. The depth20
stream already carries the full top-20 book, so no local book is kept.
"""

import json
from typing import List

from marketfeed.adapters.binance.normalizer import BinanceNormalizer
from marketfeed.connection.session import SessionProtocol
from marketfeed.connection.transport import Frame
from marketfeed.models.stream import DepthMessage, KlineMessage, StreamMessage, TradeMessage


class BinanceStreamProtocol(SessionProtocol):
    """Session protocol for one Binance symbol and kline interval."""

    exchange = "binance"

    def __init__(self, base_url: str, api_symbol: str, interval: str, depth: int = 20):
        self.base_url = base_url
        self.stream_symbol = api_symbol.lower()
        self.interval = interval
        self.depth = depth

    def streams(self) -> List[str]:
        """Names of the combined streams for this session."""
        return [
            f"{self.stream_symbol}@kline_{self.interval}",
            f"{self.stream_symbol}@depth{self.depth}@100ms",
            f"{self.stream_symbol}@aggTrade",
        ]

    def url(self) -> str:
        return f"{self.base_url}?streams={'/'.join(self.streams())}"

    def handle(self, raw: Frame) -> List[StreamMessage]:
        message = json.loads(raw)
        stream = message["stream"]
        data = message["data"]

        if "@kline_" in stream:
            candle = BinanceNormalizer.normalize_stream_kline(data)
            return [KlineMessage(exchange=self.exchange, stream=stream, data=candle)]

        if "@depth" in stream:
            book = BinanceNormalizer.normalize_depth(data, depth=self.depth)
            return [DepthMessage(exchange=self.exchange, stream=stream, data=book)]

        if stream.endswith("@aggTrade"):
            trade = BinanceNormalizer.normalize_agg_trade(data)
            return [TradeMessage(exchange=self.exchange, stream=stream, data=trade)]

        return []
