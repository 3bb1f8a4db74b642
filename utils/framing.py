"""
Netstring-style framing for the Compassmax wire protocol.

Frame layout:
    [hex length, lowercase ASCII][":"][N bytes – payload]["\\n"]

The length counts payload bytes only, so payloads may contain the
delimiter or terminator. ``FrameDecoder`` reassembles frames from a TCP
byte stream delivered in arbitrary chunks.
"""

import enum
import string

from config.settings import Settings
from core.errors     import FramingError

DELIMITER  = b":"
TERMINATOR = b"\n"

_HEX_DIGITS = frozenset(string.hexdigits.encode("ascii"))


class DecoderState(enum.Enum):
    COMPLETE   = "complete"
    INCOMPLETE = "incomplete"


class Framing:
    MAX_PAYLOAD_SIZE = Settings.MAX_PAYLOAD_SIZE
    MAX_HEADER_SIZE  = Settings.MAX_HEADER_SIZE

    @staticmethod
    def create_frame(payload: bytes) -> bytes:
        header = format(len(payload), "x").encode("ascii")
        return header + DELIMITER + bytes(payload) + TERMINATOR

    @staticmethod
    def parse_header(header: bytes) -> int:
        if not header or not all(b in _HEX_DIGITS for b in header):
            raise FramingError(
                f"Frame header is not hexadecimal: {header[:32]!r}"
            )
        length = int(header, 16)
        if length > Framing.MAX_PAYLOAD_SIZE:
            raise FramingError(f"Payload too large: {length}")
        return length

    @staticmethod
    def parse_frame(buffered: bytes) -> tuple[bytes, int] | None:
        """
        Extract the first frame of *buffered*.

        Returns ``(payload, consumed)`` or ``None`` while the frame is
        still incomplete.
        """
        pos = buffered.find(DELIMITER, 0, Framing.MAX_HEADER_SIZE + 1)
        if pos < 0:
            if len(buffered) > Framing.MAX_HEADER_SIZE:
                raise FramingError("Frame header delimiter not found")
            # fail early on garbage instead of waiting for more bytes
            if buffered:
                Framing.parse_header(buffered)
            return None

        length = Framing.parse_header(buffered[:pos])
        start  = pos + len(DELIMITER)
        end    = start + length
        if len(buffered) < end + len(TERMINATOR):
            return None
        if buffered[end:end + len(TERMINATOR)] != TERMINATOR:
            raise FramingError(
                f"Frame terminator expected after {length} payload bytes"
            )
        return bytes(buffered[start:end]), end + len(TERMINATOR)


class FrameDecoder:
    """Per-connection streaming decoder; keeps partial frames between feeds."""

    def __init__(self):
        self._buffer = bytearray()
        self.state   = DecoderState.COMPLETE

    def feed(self, data: bytes) -> list[bytes]:
        """Append *data* and return every frame now complete."""
        self._buffer.extend(data)
        frames = []
        while self._buffer:
            parsed = Framing.parse_frame(self._buffer)
            if parsed is None:
                break
            payload, consumed = parsed
            del self._buffer[:consumed]
            frames.append(payload)
        self.state = (DecoderState.INCOMPLETE if self._buffer
                      else DecoderState.COMPLETE)
        return frames

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def reset(self):
        self._buffer.clear()
        self.state = DecoderState.COMPLETE
