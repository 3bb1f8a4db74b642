"""
Exception hierarchy for the Compassmax client.

Transport errors are fatal to the connection that raised them.
``ApplicationError`` describes one failed call and leaves the
connection usable.
"""


class CompassmaxError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(CompassmaxError, ValueError):
    """Missing or malformed configuration; raised before any I/O."""


class TransportError(CompassmaxError):
    """
    Fatal failure of a connection.

    ``calls`` holds the calls that were in flight (empty when the failure
    happened outside a request) and ``identifier`` the configured client
    label.
    """

    def __init__(self, message: str, *, calls=(), identifier: str | None = None):
        super().__init__(message)
        self.message    = message
        self.calls      = tuple(calls)
        self.identifier = identifier

    def with_context(self, *, calls=None,
                     identifier: str | None = None) -> "TransportError":
        """Return a copy of this error carrying *calls* and *identifier*."""
        return type(self)(
            self.message,
            calls=self.calls if calls is None else calls,
            identifier=self.identifier or identifier,
        )

    def __str__(self) -> str:
        text = self.message
        if self.identifier:
            text += f" (identifier: {self.identifier})"
        return text


class ConnectError(TransportError, ConnectionError):
    """TCP connection could not be established."""


class ConnectionClosedError(ConnectError):
    """Connection went away while a request or handshake was pending."""


class HandshakeError(TransportError):
    """Peer handshake malformed or its signature did not verify."""


class IdentityMismatchError(HandshakeError):
    """Peer signing key differs from the pinned server key."""


class FramingError(TransportError):
    """Byte stream no longer aligned on frame boundaries."""


class DecodeError(TransportError):
    """Authenticated decryption or JSON parsing of a message failed."""


class CorrelationError(TransportError):
    """Response ids do not match the ids of the request batch."""


class RequestTimeoutError(TransportError, TimeoutError):
    """No complete response arrived within the configured deadline."""


class ApplicationError(CompassmaxError):
    """An individual call answered with an ``error`` record."""

    def __init__(self, message: str, *, code=None, data=None, warnings=None,
                 call=None, identifier: str | None = None):
        super().__init__(message)
        self.message    = message
        self.code       = code
        self.data       = data
        self.warnings   = warnings
        self.call       = call
        self.identifier = identifier

    @classmethod
    def from_result(cls, result: dict, call=None,
                    identifier: str | None = None) -> "ApplicationError":
        error = result.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            code    = error.get("code")
        else:
            message = error
            code    = None
        return cls(
            str(message) if message is not None else "Unknown application error",
            code=code,
            data=result.get("data"),
            warnings=result.get("warnings"),
            call=call,
            identifier=identifier,
        )

    def __str__(self) -> str:
        text = self.message
        if self.code is not None:
            text = f"[{self.code}] {text}"
        return text
