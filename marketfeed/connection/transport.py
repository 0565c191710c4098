"""
WebSocket transport used by stream sessions.

A transport is anything that can send text frames, be iterated for incoming
frames, and be closed. The websockets client connection satisfies this
directly; tests substitute an in-memory fake through ``transport_factory``.

Iteration semantics follow websockets: the iterator ends when the peer
closes cleanly and raises ConnectionClosed on an abnormal close.
"""

from typing import AsyncIterator, Awaitable, Callable, Protocol, Union

import structlog
import websockets
from websockets.exceptions import WebSocketException

from marketfeed.errors import TransportError

logger = structlog.get_logger(__name__)

Frame = Union[str, bytes]


class Transport(Protocol):
    """Minimal duplex frame channel."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[Frame]: ...


TransportFactory = Callable[[str], Awaitable[Transport]]


async def open_websocket(url: str) -> Transport:
    """
    Open a WebSocket connection.

    Protocol-level pings are disabled; exchanges that need a keep-alive get an
    application-level one from their session protocol.

    Args:
        url: WebSocket endpoint URL.

    Returns:
        Transport: Open websockets client connection.

    Raises:
        TransportError: If the TCP/TLS connection or the handshake fails.
    """
    try:
        connection = await websockets.connect(
            url,
            ping_interval=None,
            ping_timeout=None,
            close_timeout=10,
            max_size=2**22,
        )
    except (OSError, WebSocketException) as e:
        raise TransportError(f"Failed to open {url}: {e}") from e
    logger.debug("websocket_opened", url=url)
    return connection
