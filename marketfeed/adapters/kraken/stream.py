"""
Kraken WebSocket v1 session protocol.

Subscriptions are one frame per channel:

    {"event": "subscribe", "pair": ["XBT/USDT"], "subscription": {"name": "book", "depth": 25}}
    {"event": "subscribe", "pair": ["XBT/USDT"], "subscription": {"name": "ohlc", "interval": 60}}
    {"event": "subscribe", "pair": ["XBT/USDT"], "subscription": {"name": "trade"}}

Data messages are arrays whose last two elements are the channel name and
the pair:

    [channelID, payload, "ohlc-60", "XBT/USDT"]
    [channelID, {"as": [...], "bs": [...]}, "book-25", "XBT/USDT"]     snapshot
    [channelID, {"a": [...]}, {"b": [...]}, "book-25", "XBT/USDT"]    update

Object messages (heartbeat, systemStatus, subscriptionStatus) carry no data.
"""

import json
from typing import Any, Dict, List

import structlog

from marketfeed.adapters.kraken.normalizer import KrakenNormalizer
from marketfeed.book.local_book import LocalOrderBook
from marketfeed.connection.session import SessionProtocol
from marketfeed.connection.transport import Frame
from marketfeed.models.stream import DepthMessage, KlineMessage, StreamMessage, TradeMessage

logger = structlog.get_logger(__name__)


class KrakenStreamProtocol(SessionProtocol):
    """Session protocol for one Kraken pair and OHLC interval."""

    exchange = "kraken"

    def __init__(self, url: str, wsname: str, interval_minutes: int, depth: int = 25):
        self._url = url
        self.wsname = wsname
        self.interval_minutes = interval_minutes
        self.depth = depth
        self.book = LocalOrderBook(depth=depth)

    def url(self) -> str:
        return self._url

    def subscriptions(self) -> List[Dict[str, Any]]:
        """Subscription objects, one per channel."""
        return [
            {"name": "book", "depth": self.depth},
            {"name": "ohlc", "interval": self.interval_minutes},
            {"name": "trade"},
        ]

    def _frames(self, event: str) -> List[str]:
        return [
            json.dumps({"event": event, "pair": [self.wsname], "subscription": subscription})
            for subscription in self.subscriptions()
        ]

    def subscribe_frames(self) -> List[str]:
        return self._frames("subscribe")

    def unsubscribe_frames(self) -> List[str]:
        return self._frames("unsubscribe")

    def reset(self) -> None:
        self.book.clear()

    def handle(self, raw: Frame) -> List[StreamMessage]:
        message = json.loads(raw)

        if isinstance(message, dict):
            if message.get("event") == "subscriptionStatus" and message.get("status") == "error":
                logger.error(
                    "kraken_subscription_failed",
                    pair=message.get("pair"),
                    error=message.get("errorMessage"),
                )
            return []

        channel, pair = message[-2], message[-1]
        if not isinstance(channel, str) or pair != self.wsname:
            return []
        payloads = message[1:-2]

        if channel.startswith("book"):
            return [self._apply_book(payloads, channel)]

        if channel.startswith("ohlc"):
            candle = KrakenNormalizer.normalize_stream_ohlc(payloads[0], self.interval_minutes)
            return [KlineMessage(exchange=self.exchange, stream=channel, data=candle)]

        if channel == "trade":
            return [
                TradeMessage(exchange=self.exchange, stream=channel, data=trade)
                for trade in KrakenNormalizer.normalize_trades(payloads[0])
            ]

        return []

    def _apply_book(self, payloads: List[Any], channel: str) -> DepthMessage:
        if not all(isinstance(payload, dict) for payload in payloads):
            raise ValueError("Kraken book payloads must be objects")

        for payload in payloads:
            if "as" in payload or "bs" in payload:
                self.book.apply_snapshot(payload.get("bs", []), payload.get("as", []))
                continue
            if "b" in payload:
                self.book.apply_updates("bids", payload["b"])
            if "a" in payload:
                self.book.apply_updates("asks", payload["a"])

        return DepthMessage(exchange=self.exchange, stream=channel, data=self.book.snapshot())
