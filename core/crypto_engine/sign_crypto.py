"""
Ed25519 signing in libsodium's combined mode.

A signed message is ``signature (64 B) || message``, byte-compatible with
``crypto_sign`` / ``crypto_sign_open``. Ed25519 signatures are
deterministic, so the output matches libsodium exactly.
"""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)


class SigningCrypto:
    """Static Ed25519 identity used to sign ephemeral keys."""

    PUBLIC_KEY_SIZE = 32
    SEED_SIZE       = 32
    SECRET_KEY_SIZE = 64         # libsodium form: seed || public key
    SIGNATURE_SIZE  = 64

    def __init__(self, secret_key: bytes):
        if len(secret_key) not in (self.SEED_SIZE, self.SECRET_KEY_SIZE):
            raise ValueError(
                f"Ed25519 secret key must be 32 or 64 bytes, got {len(secret_key)}"
            )
        self.private_key = Ed25519PrivateKey.from_private_bytes(
            bytes(secret_key[:self.SEED_SIZE])
        )
        self.public_key = self.private_key.public_key()

    @classmethod
    def generate(cls) -> "SigningCrypto":
        seed = Ed25519PrivateKey.generate().private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return cls(seed)

    # ── key bytes ────────────────────────────────────────────────
    @property
    def public_key_bytes(self) -> bytes:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @property
    def secret_key_bytes(self) -> bytes:
        seed = self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return seed + self.public_key_bytes

    # ── sign / open ──────────────────────────────────────────────
    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(bytes(message)) + bytes(message)

    @staticmethod
    def open(signed: bytes, public_key: bytes) -> bytes:
        """
        Verify *signed* against *public_key* and return the message.

        Raises ``InvalidSignature`` when verification fails and
        ``ValueError`` when the inputs are malformed.
        """
        if len(public_key) != SigningCrypto.PUBLIC_KEY_SIZE:
            raise ValueError("Ed25519 public key must be 32 bytes")
        if len(signed) < SigningCrypto.SIGNATURE_SIZE:
            raise ValueError("Signed message shorter than a signature")
        key = Ed25519PublicKey.from_public_bytes(bytes(public_key))
        signature = bytes(signed[:SigningCrypto.SIGNATURE_SIZE])
        message   = bytes(signed[SigningCrypto.SIGNATURE_SIZE:])
        key.verify(signature, message)
        return message

    @staticmethod
    def verify(signed: bytes, public_key: bytes) -> bool:
        try:
            SigningCrypto.open(signed, public_key)
            return True
        except (InvalidSignature, ValueError):
            return False
