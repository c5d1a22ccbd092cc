from __future__ import annotations
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from .message import CloseInfo, Event, Reply

logger = logging.getLogger(__name__)

EventListener = Callable[[Event], None]

WILDCARD = "*"


@dataclass(frozen=True)
class Endpoint:
    """Where the binder lives: ws[s]://host[:port]/base"""
    host: str = "localhost"
    port: Optional[str] = None
    base: str = "api"
    secure: bool = False

    def with_target(self, location: str, port: Optional[str] = None) -> "Endpoint":
        return replace(self, host=location, port=str(port) if port else None)

    def url(self, token: Optional[str] = None, uuid: Optional[str] = None) -> str:
        scheme = "wss" if self.secure else "ws"
        host = f"{self.host}:{self.port}" if self.port else self.host
        url = f"{scheme}://{host}/{self.base.strip('/')}"
        query = {}
        if token:
            query["x-afb-token"] = token
            if uuid:
                query["x-afb-uuid"] = uuid
        return f"{url}?{urlencode(query)}" if query else url


class Transport(ABC):
    """
    Owns one socket. Lifecycle is reported through hooks rather than return
    values: on_open (handshake done), on_error (handshake failed, no retry),
    on_close (an open session ended), on_session (credentials refreshed).
    """

    def __init__(self):
        self._hooks: Dict[str, List[Callable[..., None]]] = {
            "open": [], "error": [], "close": [], "session": [],
        }
        self._event_listeners: Dict[str, List[EventListener]] = {}
        self._listeners_lock = threading.Lock()

    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def configure(self, endpoint: Endpoint, token: Optional[str] = None) -> None:
        """Set target and credentials; no I/O. Raises ConfigurationError while open."""
        raise NotImplementedError

    @abstractmethod
    def open(self) -> None:
        """Begin the handshake; raises ConnectError if it cannot even start."""
        raise NotImplementedError

    @abstractmethod
    def send(self, verb: str, args: Any) -> "Future[Reply]":
        """Send one call; the future holds the reply or a TransportError."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the socket. Idempotent."""
        raise NotImplementedError

    def discard(self, future: "Future[Reply]") -> None:
        """Forget the correlation entry of a call nobody waits for anymore."""

    # ---- hooks ----
    def on_open(self, cb: Callable[[], None]) -> None:
        self._hooks["open"].append(cb)

    def on_error(self, cb: Callable[[Exception], None]) -> None:
        self._hooks["error"].append(cb)

    def on_close(self, cb: Callable[[CloseInfo], None]) -> None:
        self._hooks["close"].append(cb)

    def on_session(self, cb: Callable[[Optional[str], Optional[str]], None]) -> None:
        self._hooks["session"].append(cb)

    def _emit(self, hook: str, *args) -> None:
        for cb in list(self._hooks[hook]):
            try:
                cb(*args)
            except Exception:
                logger.exception("%s hook failed", hook)

    # ---- events ----
    def add_event_listener(self, name: str, listener: EventListener) -> Callable[[], None]:
        """
        Listen for events named `name`. An API name alone ("foo") matches
        every "foo/..." event and "*" matches everything.
        Returns a callable that removes the listener.
        """
        with self._listeners_lock:
            self._event_listeners.setdefault(name, []).append(listener)

        def _remove() -> None:
            with self._listeners_lock:
                bucket = self._event_listeners.get(name)
                if bucket and listener in bucket:
                    bucket.remove(listener)
                    if not bucket:
                        del self._event_listeners[name]
        return _remove

    def event_listener_count(self, name: str) -> int:
        with self._listeners_lock:
            return len(self._event_listeners.get(name, ()))

    def _dispatch_event(self, event: Event) -> None:
        names = [event.name]
        if "/" in event.name:
            names.append(event.api)
        if event.name != WILDCARD:
            names.append(WILDCARD)
        with self._listeners_lock:
            targets = [cb for n in names for cb in self._event_listeners.get(n, ())]
        if not targets:
            logger.debug("no listener for event %s", event.name)
        for cb in targets:
            try:
                cb(event)
            except Exception:
                logger.exception("event listener for %s failed", event.name)
