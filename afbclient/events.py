from __future__ import annotations
import logging
import queue
import threading
from typing import Iterator, List, Optional

from .message import CloseInfo, Event
from .signals import Signal
from .transport import Transport

logger = logging.getLogger(__name__)

_END = object()

# Events buffered per subscription before the oldest ones are dropped
DEFAULT_QUEUE_SIZE = 1000


class Subscription:
    """
    Iterator over the events of one name. Ends when closed, either by the
    caller or by the session closing. Closing unregisters the transport
    listener.

    At most `maxsize` events are buffered; when a slow consumer lets the
    buffer fill, the oldest event is dropped and counted in `dropped`.
    """

    def __init__(self, channel: "EventChannel", name: str, maxsize: int = DEFAULT_QUEUE_SIZE):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.name = name
        self.dropped = 0
        self._channel = channel
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize)
        self._closed = False
        self._remove = None

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: object) -> None:
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                pass
            try:
                self._queue.get_nowait()
            except queue.Empty:
                continue
            self.dropped += 1
            if self.dropped == 1:
                logger.warning("event queue for %s is full; dropping oldest events", self.name)

    def _push(self, event: Event) -> None:
        if not self._closed:
            self._put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None when closed or when `timeout` elapses."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _END:
            self._put(_END)   # keep later get() calls from blocking
            return None
        return item

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._remove is not None:
            self._remove()
            self._remove = None
        self._channel._forget(self)
        self._put(_END)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class EventChannel:
    """Per-session registry of subscriptions, keyed by event name."""

    def __init__(self, transport: Transport, closed: Optional[Signal[CloseInfo]] = None):
        self.transport = transport
        self._subs: List[Subscription] = []
        self._lock = threading.Lock()
        if closed is not None:
            closed.subscribe(self._on_session_closed)

    def subscribe(self, name: str, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscription:
        sub = Subscription(self, name, maxsize)
        # one transport listener per subscription, even for duplicate names
        sub._remove = self.transport.add_event_listener(name, sub._push)
        with self._lock:
            self._subs.append(sub)
        logger.debug("subscribed to %s", name)
        return sub

    def subscriptions(self, name: Optional[str] = None) -> List[Subscription]:
        with self._lock:
            return [s for s in self._subs if name is None or s.name == name]

    def close_all(self) -> None:
        for sub in self.subscriptions():
            sub.close()

    def _forget(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subs:
                self._subs.remove(sub)

    def _on_session_closed(self, info: CloseInfo) -> None:
        subs = self.subscriptions()
        if subs:
            logger.info("session closed; ending %d event subscription(s)", len(subs))
        for sub in subs:
            sub.close()
