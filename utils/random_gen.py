"""
Nonce sources for the message codec.

A nonce source is any ``f(size) -> bytes`` callable. Production code uses
``SecureRandom.generate_nonce``; ``CounterNonce`` yields predictable
nonces for reproducible ciphertexts and must never be used on a live
connection.
"""

import itertools
import os

from nacl.bindings import crypto_box_NONCEBYTES


class SecureRandom:

    @staticmethod
    def generate_nonce(length: int = crypto_box_NONCEBYTES) -> bytes:
        return os.urandom(length)


class CounterNonce:
    """Big-endian counter nonces starting at *start*."""

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start)

    def __call__(self, length: int = crypto_box_NONCEBYTES) -> bytes:
        return next(self._counter).to_bytes(length, "big")
