"""
Streaming connection supervision.

Modules:
    session: StreamSession state machine and the SessionProtocol base class
    transport: WebSocket transport and the transport factory type
"""

from marketfeed.connection.session import (
    SessionProtocol,
    SessionState,
    StreamSession,
)
from marketfeed.connection.transport import Transport, TransportFactory, open_websocket

__all__ = [
    "SessionProtocol",
    "SessionState",
    "StreamSession",
    "Transport",
    "TransportFactory",
    "open_websocket",
]
