"""
Curve25519-XSalsa20-Poly1305 public-key authenticated encryption.

Key:   32 bytes (Curve25519)
Nonce: 24 bytes
Tag:   16 bytes (Poly1305), included in ciphertext by library

Output format:  [nonce 24B][ciphertext + tag]
"""

from nacl.bindings import (
    crypto_box_BOXZEROBYTES,
    crypto_box_NONCEBYTES,
    crypto_box_ZEROBYTES,
)
from nacl.public   import Box, PrivateKey, PublicKey


class BoxCrypto:
    """``crypto_box`` between a local secret key and a remote public key."""

    NONCE_SIZE = crypto_box_NONCEBYTES
    MAC_SIZE   = crypto_box_ZEROBYTES - crypto_box_BOXZEROBYTES
    KEY_SIZE   = 32

    def __init__(self, remote_public: bytes, local_secret: bytes):
        if len(remote_public) != self.KEY_SIZE or len(local_secret) != self.KEY_SIZE:
            raise ValueError("Box keys must be 32 bytes")
        self._box = Box(PrivateKey(bytes(local_secret)),
                        PublicKey(bytes(remote_public)))

    @staticmethod
    def generate_keypair() -> tuple[bytes, bytes]:
        """Return a fresh *(public_key, secret_key)* pair."""
        sk = PrivateKey.generate()
        return bytes(sk.public_key), bytes(sk)

    def encrypt(self, plaintext: bytes, nonce: bytes) -> bytes:
        if len(nonce) != self.NONCE_SIZE:
            raise ValueError(f"Nonce must be {self.NONCE_SIZE} bytes")
        return bytes(self._box.encrypt(plaintext, nonce))

    def decrypt(self, data: bytes) -> bytes:
        """Raises ``nacl.exceptions.CryptoError`` on forged input."""
        if len(data) < self.NONCE_SIZE + self.MAC_SIZE:
            raise ValueError("Encrypted payload too short")
        nonce = bytes(data[:self.NONCE_SIZE])
        ct    = bytes(data[self.NONCE_SIZE:])
        return self._box.decrypt(ct, nonce)
