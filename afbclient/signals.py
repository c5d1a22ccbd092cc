from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]

_UNSET: Any = object()


class Signal(Generic[T]):
    """
    Multicast publish/subscribe primitive.

    Listeners only see publications made after they subscribed. Publication
    is serialized: a value is delivered to every listener before the next
    one starts, so observers see values in publication order.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def subscribe(self, listener: Listener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                try:
                    self._listeners.remove(listener)
                except ValueError:
                    pass
        return _unsubscribe

    def publish(self, value: T) -> None:
        with self._lock:
            self._deliver(list(self._listeners), value)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _deliver(self, listeners: List[Listener], value: T) -> None:
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("listener of signal %r failed", self.name)


class BehaviorSignal(Signal[T]):
    """Signal that replays its latest value to every new subscriber."""

    def __init__(self, initial: Any = _UNSET, name: str = ""):
        super().__init__(name)
        self._value = initial

    @property
    def has_value(self) -> bool:
        return self._value is not _UNSET

    @property
    def value(self) -> T:
        if self._value is _UNSET:
            raise LookupError(f"signal {self.name!r} has not published yet")
        return self._value

    def subscribe(self, listener: Listener) -> Unsubscribe:
        with self._lock:
            unsubscribe = super().subscribe(listener)
            if self._value is not _UNSET:
                self._deliver([listener], self._value)
        return unsubscribe

    def publish(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._deliver(list(self._listeners), value)

    def update(self, fn: Callable[[T], T]) -> T:
        """Publish fn(latest) atomically with respect to other publishers."""
        with self._lock:
            value = fn(self.value)
            self.publish(value)
        return value
