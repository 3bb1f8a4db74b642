"""
Compassmax crypto engine: Ed25519 identity signatures and
Curve25519 box encryption.
"""

from .sign_crypto import SigningCrypto
from .box_crypto  import BoxCrypto

__all__ = ["SigningCrypto", "BoxCrypto"]
