"""
Encrypted JSON messages exchanged after the handshake.

Plaintext is compact JSON text restricted to the latin-1 repertoire
(characters outside it become ``?``), sent as UTF-8. The ciphertext is
``crypto_box`` output with a fresh random nonce prepended.
"""

import json
from typing import Any, Callable

from nacl.exceptions import CryptoError

from core.crypto_engine import BoxCrypto
from core.errors        import DecodeError
from utils.random_gen   import SecureRandom


def normalize_text(text: str) -> str:
    """Replace every character latin-1 cannot represent with ``?``."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


class SecureMessageCodec:
    """
    Encode/decode application messages for one negotiated channel.

    Parameters
    ----------
    remote_public : bytes
        Peer ephemeral box public key.
    local_secret : bytes
        Our ephemeral box secret key.
    nonce_source : callable | None
        ``f(size) -> bytes``; defaults to the OS CSPRNG.
    """

    def __init__(self, remote_public: bytes, local_secret: bytes,
                 nonce_source: Callable[[int], bytes] | None = None,
                 identifier: str | None = None):
        self._box          = BoxCrypto(remote_public, local_secret)
        self._nonce_source = nonce_source or SecureRandom.generate_nonce
        self._identifier   = identifier

    def encode(self, message: Any) -> bytes:
        text  = json.dumps(message, separators=(",", ":"), ensure_ascii=False)
        data  = normalize_text(text).encode("utf-8")
        nonce = self._nonce_source(BoxCrypto.NONCE_SIZE)
        return self._box.encrypt(data, nonce)

    def decode(self, payload: bytes, as_json: bool = True) -> Any:
        try:
            plaintext = self._box.decrypt(payload)
        except (CryptoError, ValueError) as exc:
            raise DecodeError("ciphertext forged or corrupted",
                              identifier=self._identifier) from exc
        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("decrypted message is not valid UTF-8",
                              identifier=self._identifier) from exc
        if not as_json:
            return text
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"decrypted message is not valid JSON: {exc}",
                              identifier=self._identifier) from exc
