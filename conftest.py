"""
Shared fixtures: identity keys, client configs and an in-process server
speaking the real handshake and message codec.
"""

import asyncio
import base64

import pytest

from config.settings       import ClientConfig
from core.crypto_engine    import BoxCrypto, SigningCrypto
from traffic.handshake     import build_handshake, parse_remote_ephemeral_key
from traffic.message_codec import SecureMessageCodec
from utils.framing         import FrameDecoder, Framing


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def echo_results(request: list) -> list:
    """Answer every call with ``{"id": ..., "data": {...}}``."""
    return [
        {"id": call["id"],
         "data": {"service": call["service"], "method": call["method"],
                  "args": call["args"]}}
        for call in request
    ]


class FakeServer:
    """
    Minimal RPC server for tests.

    ``responder(request) -> response`` builds the decrypted reply; when it
    returns ``None`` the server stays silent. ``raw_reply(request)`` may
    return bytes written verbatim instead of an encrypted frame.
    ``after_hello`` is appended to the server hello in the same write.
    """

    def __init__(self, identity: SigningCrypto, responder=echo_results,
                 raw_reply=None, chunk_size: int | None = None,
                 hello_override: bytes | None = None,
                 after_hello: bytes | None = None):
        self.identity       = identity
        self.responder      = responder
        self.raw_reply      = raw_reply
        self.chunk_size     = chunk_size
        self.hello_override = hello_override
        self.after_hello    = after_hello
        self.requests: list   = []
        self.client_keys: list = []
        self.connections = 0
        self._server  = None
        self._writers = set()

    @property
    def port(self) -> int:
        return self._server.sockets[0].getsockname()[1]

    async def __aenter__(self) -> "FakeServer":
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    async def __aexit__(self, *exc) -> bool:
        for writer in list(self._writers):
            writer.close()
        self._server.close()
        await self._server.wait_closed()
        return False

    async def _write(self, writer, data: bytes):
        if self.chunk_size:
            for i in range(0, len(data), self.chunk_size):
                writer.write(data[i:i + self.chunk_size])
                await writer.drain()
                await asyncio.sleep(0)
        else:
            writer.write(data)
            await writer.drain()

    async def _handle(self, reader, writer):
        self.connections += 1
        self._writers.add(writer)
        decoder = FrameDecoder()
        codec = None
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                for frame in decoder.feed(data):
                    if codec is None:
                        self.client_keys.append(frame[:32])
                        client_eph = parse_remote_ephemeral_key(frame)
                        eph_pub, eph_sec = BoxCrypto.generate_keypair()
                        hello = self.hello_override or build_handshake(
                            self.identity.public_key_bytes, self.identity,
                            eph_pub,
                        )
                        await self._write(
                            writer,
                            Framing.create_frame(hello)
                            + (self.after_hello or b""),
                        )
                        codec = SecureMessageCodec(client_eph, eph_sec)
                        continue

                    request = codec.decode(frame)
                    self.requests.append(request)
                    if self.raw_reply is not None:
                        await self._write(writer, self.raw_reply(request))
                        continue
                    response = self.responder(request)
                    if response is None:
                        continue
                    await self._write(
                        writer, Framing.create_frame(codec.encode(response)))
        except ConnectionError:
            pass
        finally:
            self._writers.discard(writer)
            writer.close()


@pytest.fixture
def server_identity() -> SigningCrypto:
    return SigningCrypto.generate()


@pytest.fixture
def client_identity() -> SigningCrypto:
    return SigningCrypto.generate()


@pytest.fixture
def make_config(client_identity, server_identity):
    def factory(port: int = 4000, pinned: bytes | None = None, **overrides):
        fields = {
            "host":          "127.0.0.1",
            "port":          port,
            "staticPublic":  b64(client_identity.public_key_bytes),
            "staticSecret":  b64(client_identity.secret_key_bytes),
            "key":           b64(pinned or server_identity.public_key_bytes),
            "identifier":    "test-client",
            "connectTimeout": 2.0,
            "requestTimeout": 2.0,
        }
        fields.update(overrides)
        return ClientConfig.from_dict(fields)
    return factory


@pytest.fixture
def fake_server(server_identity):
    def factory(**options) -> FakeServer:
        options.setdefault("identity", server_identity)
        return FakeServer(**options)
    return factory
