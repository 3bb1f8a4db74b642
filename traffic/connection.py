"""
One persistent, encrypted TCP connection to the RPC server.

State machine
-------------
    closed ──open()──▶ connecting ──TCP up──▶ handshaking ──peer hello──▶ open
       ▲                                                                   │
       └───────────────────── any error / close() ◀────────────────────────┘

All I/O runs on the asyncio event loop. ``_WireProtocol`` forwards
transport callbacks to the ``Connection``; every inbound byte passes
through the streaming ``FrameDecoder`` before a complete frame is handed
to the handshake or to the pending request.
"""

import asyncio
import enum
import itertools
import logging
from typing import Any, Callable

from config.settings    import ClientConfig
from core.crypto_engine import BoxCrypto
from core.errors        import (
    ConnectError,
    ConnectionClosedError,
    FramingError,
    RequestTimeoutError,
    TransportError,
)
from traffic.handshake     import HandshakeProtocol
from traffic.message_codec import SecureMessageCodec
from utils.framing         import FrameDecoder, Framing

logger = logging.getLogger("Compassmax.Connection")


class ConnectionState(enum.Enum):
    CLOSED      = "closed"
    CONNECTING  = "connecting"
    HANDSHAKING = "handshaking"
    OPEN        = "open"


def _fail(future: asyncio.Future | None, error: BaseException):
    if future is not None and not future.done():
        future.set_exception(error)
        # mark retrieved; the waiter may already be gone
        future.exception()


class _WireProtocol(asyncio.Protocol):
    """Bridges asyncio transport events to a ``Connection``."""

    def __init__(self, connection: "Connection"):
        self._connection = connection
        self.transport   = None

    def connection_made(self, transport):
        self.transport = transport
        self._connection._on_connected(transport)

    def data_received(self, data: bytes):
        self._connection._on_data(self.transport, data)

    def connection_lost(self, exc):
        self._connection._on_lost(self.transport, exc)


class Connection:
    """
    Owns the socket, the ephemeral key pair and the negotiated channel.

    Exactly one request may be outstanding at a time; callers serialise
    through ``RequestDispatcher``.

    Parameters
    ----------
    config : ClientConfig
        Address, identity keys, pinned server key and timeouts.
    nonce_source : callable | None
        Passed through to ``SecureMessageCodec``.
    """

    def __init__(self, config: ClientConfig,
                 nonce_source: Callable[[int], bytes] | None = None):
        self.config        = config
        self._handshake    = HandshakeProtocol(config.static_public_key,
                                               config.static_secret_key)
        self._nonce_source = nonce_source
        self._decoder      = FrameDecoder()
        self._state        = ConnectionState.CLOSED

        self._transport: asyncio.Transport | None = None
        self._ephemeral_public: bytes | None      = None
        self._ephemeral_secret: bytes | None      = None
        self._remote_ephemeral: bytes | None      = None
        self._codec: SecureMessageCodec | None    = None

        self._opening: asyncio.Future | None = None
        self._pending: asyncio.Future | None = None
        self._ids = itertools.count(1)

    # ── state ────────────────────────────────────────────────────
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def identifier(self) -> str | None:
        return self.config.identifier

    def _set_state(self, state: ConnectionState):
        logger.debug("%s: %s -> %s", self._label(), self._state.value,
                     state.value)
        self._state = state

    def _label(self) -> str:
        label = f"{self.config.host}:{self.config.port}"
        if self.config.identifier:
            label += f" [{self.config.identifier}]"
        return label

    def next_request_id(self) -> int:
        """Connection-scoped request id, restarting at 1 after close."""
        return next(self._ids)

    # ── lifecycle ────────────────────────────────────────────────
    async def open(self):
        """
        Connect and handshake, or wait for a handshake already running.

        Bounded by ``config.connect_timeout``; raises ``ConnectError``,
        ``HandshakeError``, ``IdentityMismatchError`` or
        ``RequestTimeoutError``. The connection is closed on failure.
        """
        if self._state is ConnectionState.OPEN:
            return

        driving = self._opening is None
        if driving:
            self._opening = asyncio.get_running_loop().create_future()
            self._set_state(ConnectionState.CONNECTING)
            waiter = self._drive_open(self._opening)
        else:
            waiter = asyncio.shield(self._opening)
        opening = self._opening

        timeout = self.config.connect_timeout
        try:
            await asyncio.wait_for(waiter, timeout=timeout)
        except TransportError:
            raise
        except asyncio.CancelledError:
            # only the driving task owns the pending TCP connect
            if driving and self._opening is opening and self._transport is None:
                self.close(ConnectionClosedError("Open cancelled",
                                                 identifier=self.identifier))
            raise
        except asyncio.TimeoutError:
            error = RequestTimeoutError(
                f"Connection to {self.config.host}:{self.config.port} "
                f"not established within {timeout:g}s",
                identifier=self.identifier,
            )
            self.close(error)
            raise error from None

    async def _drive_open(self, opening: asyncio.Future):
        loop = asyncio.get_running_loop()
        logger.info("Connecting to %s", self._label())
        try:
            await loop.create_connection(
                lambda: _WireProtocol(self),
                self.config.host, self.config.port,
            )
        except OSError as exc:
            error = ConnectError(
                f"Cannot connect to {self.config.host}:{self.config.port}: {exc}",
                identifier=self.identifier,
            )
            logger.error("%s", error)
            self.close(error)
            raise error from exc
        await asyncio.shield(opening)

    def close(self, error: TransportError | None = None):
        """
        Destroy the socket and every piece of per-connection state.

        Pending waiters are rejected with *error*, or with
        ``ConnectionClosedError`` for an explicit close.
        """
        transport = self._transport
        opening, pending = self._opening, self._pending
        if (self._state is ConnectionState.CLOSED and transport is None
                and opening is None and pending is None):
            return

        self._transport        = None
        self._opening          = None
        self._pending          = None
        self._ephemeral_public = None
        self._ephemeral_secret = None
        self._remote_ephemeral = None
        self._codec            = None
        self._decoder.reset()
        self._ids = itertools.count(1)
        self._set_state(ConnectionState.CLOSED)

        if transport is not None:
            transport.abort()

        if error is None:
            failure = ConnectionClosedError("Connection closed",
                                            identifier=self.identifier)
            logger.info("Closed connection to %s", self._label())
        else:
            failure = error
            logger.warning("Closing connection to %s: %s", self._label(),
                           error)
        _fail(opening, failure)
        _fail(pending, failure)

    # ── requests ─────────────────────────────────────────────────
    async def request(self, message: Any) -> Any:
        """
        Send one encrypted message and return the decoded reply.

        Bounded by ``config.request_timeout``; a timeout closes the
        connection and raises ``RequestTimeoutError``.
        """
        if self._state is not ConnectionState.OPEN:
            raise ConnectionClosedError("Connection is not open",
                                        identifier=self.identifier)
        if self._pending is not None:
            raise RuntimeError("A request is already in flight")

        frame   = Framing.create_frame(self._codec.encode(message))
        pending = asyncio.get_running_loop().create_future()
        self._pending = pending
        self._transport.write(frame)

        timeout = self.config.request_timeout
        try:
            return await asyncio.wait_for(pending, timeout=timeout)
        except TransportError:
            raise
        except asyncio.TimeoutError:
            error = RequestTimeoutError(
                f"No response within {timeout:g}s",
                identifier=self.identifier,
            )
            self.close(error)
            raise error from None
        except asyncio.CancelledError:
            # the late reply would be read as the answer to the next request
            self.close(ConnectionClosedError("Request cancelled",
                                             identifier=self.identifier))
            raise
        finally:
            if self._pending is pending:
                self._pending = None

    # ── transport callbacks ──────────────────────────────────────
    def _on_connected(self, transport):
        if self._state is not ConnectionState.CONNECTING:
            transport.abort()
            return
        self._transport = transport
        self._set_state(ConnectionState.HANDSHAKING)

        self._ephemeral_public, self._ephemeral_secret = \
            BoxCrypto.generate_keypair()
        hello = self._handshake.client_hello(self._ephemeral_public)
        transport.write(Framing.create_frame(hello))
        logger.debug("%s: handshake sent", self._label())

    def _on_data(self, transport, data: bytes):
        if transport is not self._transport:
            return
        try:
            frames = self._decoder.feed(data)
        except FramingError as exc:
            self.close(exc.with_context(identifier=self.identifier))
            return

        for frame in frames:
            if self._state is ConnectionState.HANDSHAKING:
                self._complete_handshake(frame)
            elif self._state is ConnectionState.OPEN:
                self._deliver(frame)
            else:
                return

    def _on_lost(self, transport, exc):
        if transport is not self._transport:
            return
        reason = f": {exc}" if exc else ""
        self.close(ConnectionClosedError(
            f"Connection closed by peer{reason}",
            identifier=self.identifier,
        ))

    def _complete_handshake(self, frame: bytes):
        try:
            remote = HandshakeProtocol.server_hello(
                frame, self.config.pinned_server_key, self.identifier,
            )
        except TransportError as exc:
            logger.error("%s: handshake rejected: %s", self._label(),
                         exc.message)
            self.close(exc)
            return

        self._remote_ephemeral = remote
        self._codec = SecureMessageCodec(
            remote, self._ephemeral_secret,
            nonce_source=self._nonce_source,
            identifier=self.identifier,
        )
        self._set_state(ConnectionState.OPEN)
        logger.info("Secure channel established with %s", self._label())

        opening, self._opening = self._opening, None
        if opening is not None and not opening.done():
            opening.set_result(None)

    def _deliver(self, frame: bytes):
        pending = self._pending
        if pending is None or pending.done():
            self.close(FramingError("Unsolicited frame received",
                                    identifier=self.identifier))
            return
        try:
            message = self._codec.decode(frame)
        except TransportError as exc:
            self.close(exc)
            return
        self._pending = None
        pending.set_result(message)

    def __repr__(self) -> str:
        return f"<Connection {self._label()} state={self._state.value}>"
