"""
Signed ephemeral-key handshake.

Flow
----
1. Client  → HELLO (static signing pub-key, signed ephemeral box pub-key)
2. Server  → HELLO (same shape)

Each side opens the peer's signed ephemeral key with the embedded static
key, which both authenticates the sender and recovers the key. The
client additionally pins the server's static key. Every later message is
encrypted with ``crypto_box`` between the two ephemeral key pairs.

Payload layout (both directions):
    [32 B static signing public key][64 B signature][32 B ephemeral public key]
"""

import hmac
import logging

from cryptography.exceptions import InvalidSignature

from core.crypto_engine import BoxCrypto, SigningCrypto
from core.errors        import HandshakeError, IdentityMismatchError

logger = logging.getLogger("Compassmax.Handshake")


class HandshakeProtocol:
    """Signed key exchange for one connection."""

    STATIC_KEY_SIZE    = SigningCrypto.PUBLIC_KEY_SIZE
    EPHEMERAL_KEY_SIZE = BoxCrypto.KEY_SIZE

    def __init__(self, static_public: bytes, static_secret: bytes):
        self._signer        = SigningCrypto(static_secret)
        self.static_public  = bytes(static_public)

    # ── client side ──────────────────────────────────────────────
    def client_hello(self, ephemeral_public: bytes) -> bytes:
        """Return the unframed handshake payload for *ephemeral_public*."""
        return build_handshake(self.static_public, self._signer,
                               ephemeral_public)

    @staticmethod
    def server_hello(payload: bytes, pinned_key: bytes,
                     identifier: str | None = None) -> bytes:
        """
        Validate the server's handshake and return its ephemeral key.

        Raises ``HandshakeError`` on a bad signature and
        ``IdentityMismatchError`` when the signing key is not the pinned
        one.
        """
        remote = parse_remote_ephemeral_key(payload, identifier)
        if not verify_server_identity(payload, pinned_key):
            raise IdentityMismatchError(
                "Signing key from server does not match expected public "
                "server key",
                identifier=identifier,
            )
        logger.debug("Server identity verified")
        return remote


def build_handshake(static_public: bytes, static_secret,
                    ephemeral_public: bytes) -> bytes:
    """
    ``static_public || crypto_sign(ephemeral_public, static_secret)``.

    *static_secret* may be raw key bytes or a ``SigningCrypto``.
    """
    signer = (static_secret if isinstance(static_secret, SigningCrypto)
              else SigningCrypto(static_secret))
    return bytes(static_public) + signer.sign(ephemeral_public)


def parse_remote_ephemeral_key(payload: bytes,
                               identifier: str | None = None) -> bytes:
    size = HandshakeProtocol.STATIC_KEY_SIZE
    if len(payload) < size + SigningCrypto.SIGNATURE_SIZE:
        raise HandshakeError("Unreadable handshake: payload too short",
                             identifier=identifier)
    remote_static = payload[:size]
    signed        = payload[size:]
    try:
        ephemeral = SigningCrypto.open(signed, remote_static)
    except (InvalidSignature, ValueError) as exc:
        raise HandshakeError("Unreadable handshake: signature invalid",
                             identifier=identifier) from exc
    if len(ephemeral) != HandshakeProtocol.EPHEMERAL_KEY_SIZE:
        raise HandshakeError(
            f"Unreadable handshake: ephemeral key is {len(ephemeral)} bytes",
            identifier=identifier,
        )
    return ephemeral


def verify_server_identity(payload: bytes, pinned_key: bytes) -> bool:
    remote_static = bytes(payload[:HandshakeProtocol.STATIC_KEY_SIZE])
    if len(remote_static) != len(pinned_key):
        return False
    return hmac.compare_digest(remote_static, bytes(pinned_key))
