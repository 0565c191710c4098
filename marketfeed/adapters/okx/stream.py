"""
OKX public WebSocket session protocol.

Subscription:
    {"op": "subscribe", "args": [
        {"channel": "books", "instId": "BTC-USDT"},
        {"channel": "candle1H", "instId": "BTC-USDT"},
        {"channel": "trades", "instId": "BTC-USDT"}
    ]}

OKX-Specific Details:
    - Ping format: string "ping" (not a WebSocket ping frame), answered by "pong"
    - ``books`` sends one "snapshot" then "update" deltas, applied to a local book
    - Event frames ({"event": "subscribe" | "error", ...}) carry no data
"""

import json
from typing import Any, Dict, List

import structlog

from marketfeed.adapters.okx.normalizer import OKXNormalizer
from marketfeed.book.local_book import LocalOrderBook
from marketfeed.connection.session import SessionProtocol
from marketfeed.connection.transport import Frame
from marketfeed.models.stream import DepthMessage, KlineMessage, StreamMessage, TradeMessage

logger = structlog.get_logger(__name__)


class OKXStreamProtocol(SessionProtocol):
    """Session protocol for one OKX instrument and candle bar."""

    exchange = "okx"
    keepalive_payload = "ping"

    def __init__(
        self,
        url: str,
        inst_id: str,
        bar: str,
        depth: int = 20,
        keepalive_interval: float = 25.0,
    ):
        self._url = url
        self.inst_id = inst_id
        self.bar = bar
        self.keepalive_interval = keepalive_interval
        self.book = LocalOrderBook(depth=depth)

    def url(self) -> str:
        return self._url

    def channels(self) -> List[Dict[str, str]]:
        """Subscription arguments for this session."""
        return [
            {"channel": "books", "instId": self.inst_id},
            {"channel": f"candle{self.bar}", "instId": self.inst_id},
            {"channel": "trades", "instId": self.inst_id},
        ]

    def subscribe_frames(self) -> List[str]:
        return [json.dumps({"op": "subscribe", "args": self.channels()})]

    def unsubscribe_frames(self) -> List[str]:
        return [json.dumps({"op": "unsubscribe", "args": self.channels()})]

    def reset(self) -> None:
        self.book.clear()

    def handle(self, raw: Frame) -> List[StreamMessage]:
        if raw == "pong" or raw == b"pong":
            return []

        message = json.loads(raw)

        if "event" in message:
            self._log_event(message)
            return []

        channel = message["arg"]["channel"]
        data = message["data"]

        if channel.startswith("books"):
            return [self._apply_book(message.get("action"), data[0], channel)]

        if channel.startswith("candle"):
            candle = OKXNormalizer.normalize_candle(data[0])
            return [KlineMessage(exchange=self.exchange, stream=channel, data=candle)]

        if channel == "trades":
            return [
                TradeMessage(
                    exchange=self.exchange,
                    stream=channel,
                    data=OKXNormalizer.normalize_trade(entry),
                )
                for entry in data
            ]

        return []

    def _apply_book(self, action: Any, data: Any, channel: str) -> DepthMessage:
        if not isinstance(data, dict):
            raise ValueError(f"OKX book data must be an object, got {type(data).__name__}")

        if action == "snapshot":
            self.book.apply_snapshot(data.get("bids", []), data.get("asks", []))
        elif action == "update":
            if data.get("bids"):
                self.book.apply_updates("bids", data["bids"])
            if data.get("asks"):
                self.book.apply_updates("asks", data["asks"])
        else:
            raise ValueError(f"Unknown OKX book action: {action!r}")

        return DepthMessage(exchange=self.exchange, stream=channel, data=self.book.snapshot())

    def _log_event(self, message: Dict[str, Any]) -> None:
        event = message.get("event")
        if event == "error":
            logger.error(
                "okx_stream_error_event",
                code=message.get("code"),
                error=message.get("msg"),
            )
        else:
            logger.info("okx_stream_event", event=event, channel=message.get("arg"))
