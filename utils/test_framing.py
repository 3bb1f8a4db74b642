import os

import pytest

from core.errors   import FramingError
from utils.framing import DecoderState, FrameDecoder, Framing

PAYLOADS = [
    b"",
    b"hello",
    b"a:b\nc:\n",                  # delimiter and terminator inside
    bytes(range(256)),
    os.urandom(70_000),
]


def test_create_frame_layout():
    assert Framing.create_frame(b"hello") == b"5:hello\n"
    assert Framing.create_frame(b"") == b"0:\n"
    assert Framing.create_frame(b"x" * 255).startswith(b"ff:")


@pytest.mark.parametrize("payload", PAYLOADS)
def test_parse_frame_round_trip(payload):
    frame = Framing.create_frame(payload)
    assert Framing.parse_frame(frame) == (payload, len(frame))


def test_parse_frame_leaves_trailing_bytes():
    data = Framing.create_frame(b"one") + b"3:tw"
    payload, consumed = Framing.parse_frame(data)
    assert payload == b"one"
    assert data[consumed:] == b"3:tw"


@pytest.mark.parametrize("partial", [b"", b"1", b"1a", b"1a:", b"5:hel", b"5:hello"])
def test_parse_frame_incomplete(partial):
    assert Framing.parse_frame(partial) is None


def test_uppercase_header_accepted():
    assert Framing.parse_frame(b"A:0123456789\n") == (b"0123456789", 13)


@pytest.mark.parametrize("data", [b"zz:abc\n", b":abc\n", b"-1:x\n",
                                  b"0x3:abc\n", b" 3:abc\n", b"g"])
def test_non_hex_header_rejected(data):
    with pytest.raises(FramingError):
        Framing.parse_frame(data)


def test_bad_terminator_rejected():
    with pytest.raises(FramingError):
        Framing.parse_frame(b"3:abcX")


def test_missing_delimiter_rejected():
    with pytest.raises(FramingError):
        Framing.parse_frame(b"1" * (Framing.MAX_HEADER_SIZE + 1))


def test_oversized_payload_rejected():
    header = format(Framing.MAX_PAYLOAD_SIZE + 1, "x").encode()
    with pytest.raises(FramingError):
        Framing.parse_frame(header + b":")


@pytest.mark.parametrize("payload", PAYLOADS[:4])
def test_decoder_every_split_point(payload):
    frame = Framing.create_frame(payload)
    for cut in range(1, len(frame)):
        decoder = FrameDecoder()
        assert decoder.feed(frame[:cut]) == []
        assert decoder.state is DecoderState.INCOMPLETE
        assert decoder.feed(frame[cut:]) == [payload]
        assert decoder.state is DecoderState.COMPLETE


def test_decoder_byte_by_byte():
    payload = b"1f:\n" * 10
    frame = Framing.create_frame(payload)
    decoder = FrameDecoder()
    frames = []
    for i in range(len(frame)):
        out = decoder.feed(frame[i:i + 1])
        if i < len(frame) - 1:
            assert out == []
            assert decoder.state is DecoderState.INCOMPLETE
        frames.extend(out)
    assert frames == [payload]
    assert decoder.buffered == 0


def test_decoder_random_chunks():
    payload = os.urandom(5000)
    frame = Framing.create_frame(payload)
    decoder = FrameDecoder()
    frames, pos = [], 0
    while pos < len(frame):
        size = 1 + os.urandom(1)[0] % 300
        frames.extend(decoder.feed(frame[pos:pos + size]))
        pos += size
    assert frames == [payload]


def test_decoder_multiple_frames_in_one_chunk():
    data = b"".join(Framing.create_frame(p) for p in (b"a", b"", b"ccc"))
    decoder = FrameDecoder()
    assert decoder.feed(data + b"4:dd") == [b"a", b"", b"ccc"]
    assert decoder.state is DecoderState.INCOMPLETE
    assert decoder.buffered == 4
    assert decoder.feed(b"dd\n") == [b"dddd"]


def test_decoder_reset_discards_partial_frame():
    decoder = FrameDecoder()
    decoder.feed(b"10:abc")
    decoder.reset()
    assert decoder.buffered == 0
    assert decoder.state is DecoderState.COMPLETE
    assert decoder.feed(b"1:z\n") == [b"z"]


def test_decoder_garbage_raises():
    decoder = FrameDecoder()
    with pytest.raises(FramingError):
        decoder.feed(b"hello world")
