"""
Configuration defaults and resolvers for afbclient.
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

from .errors import ConfigurationError
from .transport import Endpoint

DEFAULT_HOST = "localhost"
DEFAULT_PORT = None
DEFAULT_BASE = "api"

# Seconds; None means calls wait forever
DEFAULT_CALL_TIMEOUT = None

DEFAULT_RECONNECT_DELAY = 1.0
DEFAULT_RECONNECT_MAX_DELAY = 30.0
DEFAULT_RECONNECT_MAX_ATTEMPTS = 10

# Environment variable names, keyed by ClientConfig field
ENV_VARS = {
    "host":           "AFB_HOST",
    "port":           "AFB_PORT",
    "base":           "AFB_BASE",
    "token":          "AFB_TOKEN",
    "secure":         "AFB_SECURE",
    "call_timeout_s": "AFB_CALL_TIMEOUT",
    "auto_reconnect": "AFB_AUTO_RECONNECT",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ClientConfig:
    host: str = DEFAULT_HOST
    port: Optional[str] = DEFAULT_PORT
    base: str = DEFAULT_BASE
    token: Optional[str] = None
    secure: bool = False
    call_timeout_s: Optional[float] = DEFAULT_CALL_TIMEOUT
    auto_reconnect: bool = False
    reconnect_delay_s: float = DEFAULT_RECONNECT_DELAY
    reconnect_max_delay_s: float = DEFAULT_RECONNECT_MAX_DELAY
    reconnect_max_attempts: int = DEFAULT_RECONNECT_MAX_ATTEMPTS

    def endpoint(self) -> Endpoint:
        return Endpoint(host=self.host, port=self.port, base=self.base, secure=self.secure)


def parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name}: expected a boolean, got {raw!r}")


def parse_timeout(name: str, raw: str) -> Optional[float]:
    """Seconds as a positive number; empty, 0 or 'none' disable the timeout."""
    value = raw.strip().lower()
    if value in ("", "none", "0"):
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ConfigurationError(f"{name}: expected seconds, got {raw!r}") from None
    if seconds <= 0:
        raise ConfigurationError(f"{name}: timeout must be positive, got {raw!r}")
    return seconds


def parse_port(name: str, raw: str) -> Optional[str]:
    value = raw.strip()
    if not value:
        return None
    if not value.isdigit() or not 0 < int(value) < 65536:
        raise ConfigurationError(f"{name}: invalid port {raw!r}")
    return value


_PARSERS = {
    "port": parse_port,
    "secure": parse_bool,
    "auto_reconnect": parse_bool,
    "call_timeout_s": parse_timeout,
}


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides) -> ClientConfig:
    """Build a ClientConfig.

    Priority:
        1. ``overrides`` that are not None (e.g. from CLI flags).
        2. The ``AFB_*`` environment variables listed in ENV_VARS.
        3. Module defaults.

    Raises ConfigurationError on unknown fields or unparseable values.
    """
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(ClientConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ConfigurationError(f"unknown config field(s): {', '.join(sorted(unknown))}")

    values = {}
    for field_name, var in ENV_VARS.items():
        raw = env.get(var)
        if raw is None:
            continue
        parser = _PARSERS.get(field_name)
        values[field_name] = parser(var, raw) if parser else raw

    values.update({k: v for k, v in overrides.items() if v is not None})
    if "port" in values and values["port"] is not None:
        values["port"] = parse_port("port", str(values["port"]))
    return replace(ClientConfig(), **values)


def resolve_token(explicit_token: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Explicit token first, then AFB_TOKEN; None when neither is set."""
    if explicit_token:
        return explicit_token
    env = os.environ if environ is None else environ
    return env.get(ENV_VARS["token"]) or None
