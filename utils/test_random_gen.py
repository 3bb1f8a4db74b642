from utils.random_gen import CounterNonce, SecureRandom


def test_secure_nonce_size():
    assert len(SecureRandom.generate_nonce()) == 24
    assert len(SecureRandom.generate_nonce(8)) == 8
    assert SecureRandom.generate_nonce() != SecureRandom.generate_nonce()


def test_counter_nonce_sequence():
    nonces = CounterNonce(start=255)
    assert nonces() == b"\x00" * 23 + b"\xff"
    assert nonces() == b"\x00" * 22 + b"\x01\x00"
    assert nonces(4) == b"\x00\x00\x01\x01"
