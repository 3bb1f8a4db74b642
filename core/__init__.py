from .crypto_engine import BoxCrypto, SigningCrypto

__all__ = ["BoxCrypto", "SigningCrypto"]
