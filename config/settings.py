"""
Library defaults and the per-client connection configuration.

``Settings`` holds read-only defaults shared by every client.
``ClientConfig`` is the explicit configuration value each client owns;
nothing here is mutated after construction.
"""

import base64
import binascii
import json
import re

from core.errors import ConfigError


class Settings:
    """Centralised library defaults."""

    # ── application ──────────────────────────────────────────────
    APP_NAME    = "Compassmax"
    APP_VERSION = "1.0.0"

    # ── network ──────────────────────────────────────────────────
    CONNECT_TIMEOUT = 10.0       # seconds, TCP connect + handshake
    REQUEST_TIMEOUT = 30.0       # seconds, per request

    # ── wire ─────────────────────────────────────────────────────
    MAX_PAYLOAD_SIZE = 16 * 1024 * 1024          # 16 MiB
    MAX_HEADER_SIZE  = 16                        # hex digits

    # ── logging ──────────────────────────────────────────────────
    LOG_LEVEL  = "INFO"
    LOG_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


_B64 = re.compile(
    r"^([A-Za-z0-9+/]{4})*"
    r"([A-Za-z0-9+/]{4}|[A-Za-z0-9+/]{3}=|[A-Za-z0-9+/]{2}==)$"
)

SIGN_PUBLIC_KEY_SIZE = 32
SIGN_SEED_SIZE       = 32
SIGN_SECRET_KEY_SIZE = 64

_REQUIRED = ("host", "port", "static_public", "static_secret", "server_key")

# camelCase keys used by existing deployments
_ALIASES = {
    "staticPublic": "static_public",
    "staticSecret": "static_secret",
    "key":          "server_key",
    "serverKey":    "server_key",
    "connectTimeout": "connect_timeout",
    "requestTimeout": "request_timeout",
}


def decode_key(name: str, value, sizes: tuple[int, ...]) -> bytes:
    """Strictly decode a base64 key and check its length."""
    if not isinstance(value, str):
        raise ConfigError(f"config.{name} must be type str")
    if not _B64.match(value):
        raise ConfigError(f"config.{name} must be base64 encoded")
    try:
        raw = base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ConfigError(f"config.{name} must be base64 encoded") from exc
    if len(raw) not in sizes:
        expected = " or ".join(str(s) for s in sizes)
        raise ConfigError(
            f"config.{name} must decode to {expected} bytes, got {len(raw)}"
        )
    return raw


class ClientConfig:
    """
    Connection configuration owned by a single client.

    Parameters
    ----------
    host, port : str, int
        RPC server address.
    static_public : str
        Base64 Ed25519 signing public key identifying this client.
    static_secret : str
        Base64 signing secret key, either the 64-byte libsodium form
        (seed followed by public key) or the bare 32-byte seed.
    server_key : str
        Base64 signing public key the server must present.
    identifier : str | None
        Free-form label attached to log lines and errors.
    """

    def __init__(self, host: str, port: int,
                 static_public: str, static_secret: str,
                 server_key: str,
                 identifier: str | None = None,
                 connect_timeout: float = Settings.CONNECT_TIMEOUT,
                 request_timeout: float = Settings.REQUEST_TIMEOUT):
        if not isinstance(host, str) or not host:
            raise ConfigError("config.host must be a non-empty str")
        if isinstance(port, bool) or not isinstance(port, int) \
                or not 0 < port < 65536:
            raise ConfigError("config.port must be an int in 1..65535")
        if identifier is not None and not isinstance(identifier, str):
            raise ConfigError("config.identifier must be type str")
        for name, value in (("connect_timeout", connect_timeout),
                            ("request_timeout", request_timeout)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) \
                    or value <= 0:
                raise ConfigError(f"config.{name} must be a positive number")

        self._public  = decode_key("static_public", static_public,
                                   (SIGN_PUBLIC_KEY_SIZE,))
        self._secret  = decode_key("static_secret", static_secret,
                                   (SIGN_SEED_SIZE, SIGN_SECRET_KEY_SIZE))
        self._pinned  = decode_key("server_key", server_key,
                                   (SIGN_PUBLIC_KEY_SIZE,))
        if len(self._secret) == SIGN_SECRET_KEY_SIZE \
                and self._secret[SIGN_SEED_SIZE:] != self._public:
            raise ConfigError(
                "config.static_secret does not belong to config.static_public"
            )

        self.host            = host
        self.port            = port
        self.identifier      = identifier
        self.connect_timeout = float(connect_timeout)
        self.request_timeout = float(request_timeout)

    # ── constructors ─────────────────────────────────────────────
    @classmethod
    def from_dict(cls, data: dict) -> "ClientConfig":
        if not isinstance(data, dict):
            raise ConfigError("config must be a mapping")
        fields = {}
        for key, value in data.items():
            fields[_ALIASES.get(key, key)] = value

        missing = [f for f in _REQUIRED if fields.get(f) is None]
        if missing:
            raise ConfigError(
                "Argument 'config' is missing the following fields: "
                + ", ".join(missing)
            )
        unknown = set(fields) - set(_REQUIRED) - {
            "identifier", "connect_timeout", "request_timeout"}
        if unknown:
            raise ConfigError(
                "Unknown config fields: " + ", ".join(sorted(unknown))
            )
        return cls(**fields)

    @classmethod
    def from_file(cls, path: str) -> "ClientConfig":
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
        return cls.from_dict(data)

    # ── decoded keys ─────────────────────────────────────────────
    @property
    def static_public_key(self) -> bytes:
        return self._public

    @property
    def static_secret_key(self) -> bytes:
        return self._secret

    @property
    def pinned_server_key(self) -> bytes:
        return self._pinned

    def __repr__(self) -> str:
        return (f"ClientConfig(host={self.host!r}, port={self.port}, "
                f"identifier={self.identifier!r})")
