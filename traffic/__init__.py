"""
Compassmax traffic layer.
"""

from .handshake     import HandshakeProtocol
from .message_codec import SecureMessageCodec
from .connection    import Connection, ConnectionState
from .dispatcher    import Call, RequestDispatcher

__all__ = [
    "HandshakeProtocol",
    "SecureMessageCodec",
    "Connection",
    "ConnectionState",
    "Call",
    "RequestDispatcher",
]
