"""
Stream session supervisor.

One StreamSession exists per adapter ``connect`` call. It opens the
transport, sends the exchange's subscriptions, runs the optional keep-alive,
turns raw frames into StreamMessages through the exchange's SessionProtocol,
and reconnects after unexpected closes.

State machine:

    IDLE --start--> CONNECTING --opened--> OPEN
    CONNECTING --connect failed--> RECONNECT_PENDING
    OPEN --closed/error--> RECONNECT_PENDING
    RECONNECT_PENDING --delay elapsed--> CONNECTING
    any --disconnect()--> CLOSED (terminal)

Reconnects use a fixed delay with no attempt ceiling: a live dashboard
should keep trying for as long as it is open.

Example:
    >>> session = StreamSession(protocol, handler, reconnect_delay=5.0)
    >>> session.start()
    >>> ...
    >>> session.disconnect()
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import structlog
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from marketfeed.connection.transport import Frame, Transport, TransportFactory, open_websocket
from marketfeed.errors import TransportError
from marketfeed.models.stream import MessageHandler, StreamMessage

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

# Errors a protocol raises for a frame it cannot make sense of.
PARSE_ERRORS = (ValueError, KeyError, TypeError, IndexError, ValidationError)

# Errors that count as an unexpected close of the transport.
TRANSPORT_ERRORS = (TransportError, WebSocketException, OSError, asyncio.TimeoutError)


class SessionState(str, Enum):
    """Lifecycle state of a stream session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_PENDING = "reconnect_pending"
    CLOSED = "closed"


class SessionProtocol(ABC):
    """
    Exchange-specific half of a stream session.

    Subclasses know the endpoint, the subscription frames and the message
    shapes of one exchange for one (symbol, interval) pair. They keep any
    per-session state, such as a local order book, and must reset it in
    ``reset()``, which runs before every (re)connect.

    Attributes:
        exchange: Exchange identifier passed to the handler.
        keepalive_payload: Text frame sent periodically, or None.
        keepalive_interval: Seconds between keep-alive frames.
    """

    exchange: str = ""
    keepalive_payload: Optional[str] = None
    keepalive_interval: float = 25.0

    @abstractmethod
    def url(self) -> str:
        """WebSocket URL to open."""
        pass

    def subscribe_frames(self) -> List[str]:
        """Text frames sent right after the transport opens."""
        return []

    def unsubscribe_frames(self) -> List[str]:
        """Text frames sent, best-effort, when the session is disconnected."""
        return []

    def reset(self) -> None:
        """Drop per-connection state before a new connection."""

    @abstractmethod
    def handle(self, raw: Frame) -> List[StreamMessage]:
        """
        Turn one raw frame into zero or more stream messages.

        Control frames (acks, heartbeats, pongs) yield an empty list.

        Raises:
            ValueError, KeyError, TypeError, IndexError, ValidationError:
                If the frame is malformed. The session drops it.
        """
        pass


class StreamSession:
    """
    Supervises one streaming subscription.

    Attributes:
        protocol: Exchange-specific session protocol.
        reconnect_delay: Seconds to wait before each reconnect.
    """

    def __init__(
        self,
        protocol: SessionProtocol,
        handler: MessageHandler,
        reconnect_delay: float = 5.0,
        transport_factory: Optional[TransportFactory] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.protocol = protocol
        self.reconnect_delay = reconnect_delay

        self._handler: Optional[MessageHandler] = handler
        self._transport_factory = transport_factory or open_websocket
        self._sleep = sleep or asyncio.sleep

        self._state = SessionState.IDLE
        self._transport: Optional[Transport] = None
        self._task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._teardown_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connect_count = 0
        self._reconnect_count = 0

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def connect_count(self) -> int:
        """Number of times the transport was opened."""
        return self._connect_count

    @property
    def reconnect_count(self) -> int:
        """Number of reconnects scheduled after unexpected closes."""
        return self._reconnect_count

    def start(self) -> None:
        """
        Start the session on the running event loop.

        Raises:
            RuntimeError: If called outside a running loop or more than once.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session already started (state={self._state.value})")

        self._loop = asyncio.get_running_loop()
        self._state = SessionState.CONNECTING
        self._task = self._loop.create_task(self._run())

        logger.info(
            "stream_session_started",
            exchange=self.protocol.exchange,
            url=self.protocol.url(),
        )

    def disconnect(self) -> None:
        """
        Stop the session. Synchronous and idempotent.

        Detaches the handler at once, so no message is delivered after this
        returns. Unsubscribing and closing the transport happen in a
        background teardown task.
        """
        if self._state is SessionState.CLOSED:
            return

        previous = self._state
        self._state = SessionState.CLOSED
        self._handler = None
        self._stop_keepalive()

        if self._task is not None and not self._task.done():
            self._task.cancel()

        transport, self._transport = self._transport, None
        if transport is not None and self._loop is not None and not self._loop.is_closed():
            self._teardown_task = self._loop.create_task(self._teardown(transport))

        logger.info(
            "stream_session_disconnected",
            exchange=self.protocol.exchange,
            previous_state=previous.value,
        )

    async def wait_closed(self) -> None:
        """Wait until the runner and the teardown task have finished."""
        for task in (self._task, self._teardown_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while self._state is not SessionState.CLOSED:
            await self._connect_once()

            if self._state is SessionState.CLOSED:
                return

            self._state = SessionState.RECONNECT_PENDING
            self._reconnect_count += 1
            logger.info(
                "stream_reconnect_scheduled",
                exchange=self.protocol.exchange,
                delay_seconds=self.reconnect_delay,
                reconnect_count=self._reconnect_count,
            )
            await self._sleep(self.reconnect_delay)

            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CONNECTING

    async def _connect_once(self) -> None:
        """Open, subscribe and read until the transport closes or fails."""
        self._state = SessionState.CONNECTING
        self.protocol.reset()
        url = self.protocol.url()

        try:
            transport = await self._transport_factory(url)
        except TRANSPORT_ERRORS as e:
            logger.warning(
                "stream_connect_failed",
                exchange=self.protocol.exchange,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if self._state is SessionState.CLOSED:
            await self._teardown(transport)
            return

        self._transport = transport
        self._connect_count += 1
        self._state = SessionState.OPEN
        logger.info(
            "stream_connected",
            exchange=self.protocol.exchange,
            url=url,
            connect_count=self._connect_count,
        )

        try:
            for frame in self.protocol.subscribe_frames():
                await transport.send(frame)
            self._start_keepalive(transport)

            async for raw in transport:
                if self._state is SessionState.CLOSED:
                    break
                self._dispatch(raw)
            else:
                logger.warning("stream_closed_by_peer", exchange=self.protocol.exchange)

        except ConnectionClosed as e:
            logger.warning(
                "stream_connection_closed",
                exchange=self.protocol.exchange,
                code=e.rcvd.code if e.rcvd else None,
            )
        except TRANSPORT_ERRORS as e:
            logger.error(
                "stream_transport_error",
                exchange=self.protocol.exchange,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self._stop_keepalive()
            if self._transport is transport:
                self._transport = None

        if self._state is not SessionState.CLOSED:
            await self._close_quietly(transport)

    def _dispatch(self, raw: Frame) -> None:
        try:
            messages = self.protocol.handle(raw)
        except PARSE_ERRORS as e:
            logger.debug(
                "stream_frame_dropped",
                exchange=self.protocol.exchange,
                error=str(e),
                frame=str(raw)[:200],
            )
            return
        except Exception:
            logger.exception(
                "stream_frame_handling_failed",
                exchange=self.protocol.exchange,
                frame=str(raw)[:200],
            )
            return

        for message in messages:
            handler = self._handler
            if handler is None:
                return
            try:
                handler(message, self.protocol.exchange)
            except Exception:
                logger.exception(
                    "stream_handler_failed",
                    exchange=self.protocol.exchange,
                    message_type=message.type,
                )

    def _start_keepalive(self, transport: Transport) -> None:
        payload = self.protocol.keepalive_payload
        if payload is None:
            return
        self._keepalive_task = asyncio.get_running_loop().create_task(
            self._keepalive(transport, payload)
        )

    def _stop_keepalive(self) -> None:
        if self._keepalive_task is not None and not self._keepalive_task.done():
            self._keepalive_task.cancel()
        self._keepalive_task = None

    async def _keepalive(self, transport: Transport, payload: str) -> None:
        interval = self.protocol.keepalive_interval
        try:
            while True:
                await self._sleep(interval)
                await transport.send(payload)
                logger.debug("stream_keepalive_sent", exchange=self.protocol.exchange)
        except TRANSPORT_ERRORS as e:
            logger.debug(
                "stream_keepalive_stopped",
                exchange=self.protocol.exchange,
                error=str(e),
            )

    async def _teardown(self, transport: Transport) -> None:
        """Best-effort unsubscribe, then close."""
        try:
            for frame in self.protocol.unsubscribe_frames():
                await transport.send(frame)
        except TRANSPORT_ERRORS as e:
            logger.debug(
                "stream_unsubscribe_skipped",
                exchange=self.protocol.exchange,
                error=str(e),
            )
        await self._close_quietly(transport)

    async def _close_quietly(self, transport: Transport) -> None:
        try:
            await transport.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("stream_close_error", exchange=self.protocol.exchange, error=str(e))

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"StreamSession(exchange={self.protocol.exchange}, "
            f"state={self._state.value}, "
            f"reconnects={self._reconnect_count})"
        )
