from .random_gen import CounterNonce, SecureRandom
from .framing    import DecoderState, FrameDecoder, Framing

__all__ = [
    "CounterNonce",
    "SecureRandom",
    "DecoderState",
    "FrameDecoder",
    "Framing",
]
