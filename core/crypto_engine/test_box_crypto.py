import pytest
from nacl.exceptions import CryptoError

from core.crypto_engine import BoxCrypto


def test_sizes():
    assert BoxCrypto.NONCE_SIZE == 24
    assert BoxCrypto.MAC_SIZE == 16
    assert BoxCrypto.KEY_SIZE == 32


def test_encrypt_layout_and_round_trip():
    a_pub, a_sec = BoxCrypto.generate_keypair()
    b_pub, b_sec = BoxCrypto.generate_keypair()
    nonce = b"\x05" * 24
    data = BoxCrypto(b_pub, a_sec).encrypt(b"ticket", nonce)
    assert data[:24] == nonce
    assert len(data) == 24 + BoxCrypto.MAC_SIZE + len(b"ticket")
    assert BoxCrypto(a_pub, b_sec).decrypt(data) == b"ticket"


def test_decrypt_rejects_short_and_forged():
    a_pub, a_sec = BoxCrypto.generate_keypair()
    b_pub, b_sec = BoxCrypto.generate_keypair()
    box = BoxCrypto(a_pub, b_sec)
    with pytest.raises(ValueError):
        box.decrypt(b"\x00" * (24 + 15))
    with pytest.raises(CryptoError):
        box.decrypt(b"\x00" * (24 + 16))


def test_key_length_checked():
    with pytest.raises(ValueError):
        BoxCrypto(b"\x01" * 31, b"\x02" * 32)
