"""Process configuration: flags, then environment, then defaults.

Each setting is resolved on its own by trying an ordered list of
resolvers and taking the first value found. A required setting that no
resolver can supply raises ``Unresolved``; a value that is present but
unusable (say, a non-numeric port) raises ``InvalidSetting``. Both are
``StartupError`` and stop the process before it serves anything.

Usage::

    config = resolve_config(vars(args), os.environ)
    url = config.bus_url()
"""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from natsbridge_bus.dispatch import DEFAULT_REQUEST_TIMEOUT
from natsbridge_bus.errors import InvalidSetting, Unresolved
from natsbridge_bus.nats_client import DEFAULT_SCHEME, build_url
from natsbridge_server.codec import MAX_REQUEST_SIZE
from natsbridge_server.logging_config import VALID_LOG_LEVELS

DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_LISTEN_PORT = 8080


# ------------------------------------------------------------------ #
# Settings table
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class Setting:
    """One configurable value and where it may come from."""

    name: str
    flag: str
    env: str
    help: str
    required: bool = False
    default: Any = None


SETTINGS: tuple[Setting, ...] = (
    Setting("user", "--user", "NATS_USER", "NATS username", required=True),
    Setting("password", "--pass", "NATS_PASS", "NATS password", required=True),
    Setting("host", "--host", "NATS_HOST", "NATS server address", required=True),
    Setting("port", "--port", "NATS_PORT", "NATS server port", required=True),
    Setting("test_topic", "--test", "NATS_TEST", "Subscribe to this topic, for testing"),
    Setting(
        "listen_host",
        "--listen-host",
        "GATEWAY_LISTEN_HOST",
        "HTTP bind address",
        default=DEFAULT_LISTEN_HOST,
    ),
    Setting(
        "listen_port",
        "--listen-port",
        "GATEWAY_LISTEN_PORT",
        "HTTP port",
        default=DEFAULT_LISTEN_PORT,
    ),
    Setting(
        "max_body_size",
        "--max-body-size",
        "GATEWAY_MAX_BODY_SIZE",
        "Largest accepted request body, in bytes",
        default=MAX_REQUEST_SIZE,
    ),
    Setting(
        "request_timeout",
        "--request-timeout",
        "GATEWAY_REQUEST_TIMEOUT",
        "Seconds to wait for a reply on /requests",
        default=DEFAULT_REQUEST_TIMEOUT,
    ),
    Setting("log_level", "--log-level", "GATEWAY_LOG_LEVEL", "Log level", default="INFO"),
    Setting("log_json", "--log-json", "GATEWAY_LOG_JSON", "Emit JSON log lines", default=False),
)


# ------------------------------------------------------------------ #
# Resolvers
# ------------------------------------------------------------------ #


class Resolver(Protocol):
    def describe(self, setting: Setting) -> str:
        """Where this resolver looks, for error messages."""
        ...

    def lookup(self, setting: Setting) -> Any | None:
        """Return the value for *setting*, or ``None`` if not present."""
        ...


class FlagResolver:
    """Reads parsed command-line flags, keyed by setting name.

    Unset flags are ``None`` (or ``False`` for switches) and count as absent.
    """

    def __init__(self, values: Mapping[str, Any]) -> None:
        self._values = values

    def describe(self, setting: Setting) -> str:
        return f"{setting.flag} flag"

    def lookup(self, setting: Setting) -> Any | None:
        value = self._values.get(setting.name)
        if value is None or value == "" or value is False:
            return None
        return value


class EnvResolver:
    """Reads environment variables; empty values count as absent."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def describe(self, setting: Setting) -> str:
        return f"{setting.env} env var"

    def lookup(self, setting: Setting) -> str | None:
        return self._environ.get(setting.env) or None


def resolve_setting(setting: Setting, resolvers: Sequence[Resolver]) -> Any:
    """Return the first value any resolver has for *setting*.

    Falls back to the setting's default; raises ``Unresolved`` if the
    setting is required and nothing supplied it.
    """
    for resolver in resolvers:
        value = resolver.lookup(setting)
        if value is not None:
            return value
    if setting.required:
        raise Unresolved(setting.name, [r.describe(setting) for r in resolvers])
    return setting.default


# ------------------------------------------------------------------ #
# Resolved configuration
# ------------------------------------------------------------------ #


class GatewayConfig(BaseModel):
    """Immutable configuration, built once at startup."""

    model_config = ConfigDict(frozen=True)

    user: str = Field(..., min_length=1, description="NATS username")
    password: SecretStr = Field(..., description="NATS password")
    host: str = Field(..., min_length=1, description="NATS server address")
    port: int = Field(..., gt=0, le=65535, description="NATS server port")
    test_topic: str | None = Field(None, description="Diagnostic subscribe topic")
    scheme: str = Field(DEFAULT_SCHEME, description="Bus URL scheme")
    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = Field(DEFAULT_LISTEN_PORT, gt=0, le=65535)
    max_body_size: int = Field(MAX_REQUEST_SIZE, gt=0)
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, gt=0)
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(sorted(VALID_LOG_LEVELS))}")
        return level

    @property
    def diagnostic_mode(self) -> bool:
        return bool(self.test_topic)

    def bus_url(self) -> str:
        return build_url(
            self.user,
            self.password.get_secret_value(),
            self.host,
            self.port,
            scheme=self.scheme,
        )


def resolve_config(
    flags: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
    settings: Sequence[Setting] = SETTINGS,
) -> GatewayConfig:
    """Resolve every setting (flag, then environment) and validate the result."""
    resolvers: list[Resolver] = [FlagResolver(flags), EnvResolver(environ)]
    values = {s.name: resolve_setting(s, resolvers) for s in settings}
    try:
        return GatewayConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidSetting(f"Invalid configuration: {problems}") from e
