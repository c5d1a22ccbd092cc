from __future__ import annotations
from typing import Optional, Sequence


class AfbError(Exception):
    """Base class for every error raised by afbclient."""


class ConfigurationError(AfbError):
    """Misuse of the client: bad settings, or an operation in the wrong phase."""


class ConnectError(AfbError):
    """The handshake could not be started."""


class TransportError(AfbError):
    pass


class NotConnectedError(TransportError):
    pass


class SessionClosed(TransportError):
    """The session closed while a call was in flight."""

    def __init__(self, code: Optional[int] = None, reason: str = ""):
        self.code = code
        self.reason = reason
        super().__init__(f"session closed (code={code}, reason={reason!r})")


class SchemaError(AfbError):
    """An expected field is missing from an introspection payload."""

    def __init__(self, path: Sequence[str]):
        self.path = tuple(path)
        super().__init__("missing field: " + "/".join(self.path))
