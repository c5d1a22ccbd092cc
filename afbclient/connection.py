from __future__ import annotations
import logging
import threading
from enum import Enum
from typing import Optional

from .errors import ConnectError
from .message import CloseInfo, Context, Event, Status
from .signals import BehaviorSignal, Signal
from .transport import WILDCARD, Endpoint, Transport

logger = logging.getLogger(__name__)


class State(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING   = "connecting"
    READY        = "ready"


class ConnectionStateMachine:
    """
    Disconnected -> Connecting -> Ready, back to Disconnected on close or on
    handshake error. Sole owner of the transport, the Status value and the
    ready signal.

    Streams:
      opened          Signal[None]         transport on-open
      closed          Signal[CloseInfo]    transport on-close
      connect_failed  Signal[Exception]    transport on-error
      events          Signal[Event]        every inbound event
      status          BehaviorSignal[Status]
      ready           BehaviorSignal[bool] (no value until the first outcome)
      auto_reconnect  BehaviorSignal[bool]
    """

    def __init__(self, transport: Transport, token: Optional[str] = None):
        self.transport = transport
        self._context = Context(token=token)
        self._state = State.DISCONNECTED
        self._lock = threading.Lock()

        self.opened: Signal[None] = Signal("opened")
        self.closed: Signal[CloseInfo] = Signal("closed")
        self.connect_failed: Signal[Exception] = Signal("connect_failed")
        self.events: Signal[Event] = Signal("events")
        self.status: BehaviorSignal[Status] = BehaviorSignal(Status(), name="status")
        self.ready: BehaviorSignal[bool] = BehaviorSignal(name="ready")
        self.auto_reconnect: BehaviorSignal[bool] = BehaviorSignal(False, name="auto_reconnect")

        transport.on_open(self._on_open)
        transport.on_error(self._on_error)
        transport.on_close(self._on_close)
        transport.on_session(self._on_session)
        self._unlisten = transport.add_event_listener(WILDCARD, self.events.publish)

    @property
    def state(self) -> State:
        return self._state

    @property
    def context(self) -> Context:
        return self._context

    def configure(self, endpoint: Endpoint, token: Optional[str] = None) -> None:
        self.transport.configure(endpoint, token)
        if token is not None:
            self._context = Context(token=token, uuid=self._context.uuid)

    def open(self) -> Optional[ConnectError]:
        """Start the handshake. The outcome arrives through the streams."""
        with self._lock:
            if self._state != State.DISCONNECTED:
                logger.debug("open() ignored while %s", self._state.value)
                return None
            self._state = State.CONNECTING
        try:
            self.transport.open()
        except ConnectError as exc:
            logger.error("can not open websocket: %s", exc)
            with self._lock:
                self._state = State.DISCONNECTED
            self.ready.publish(False)
            self.connect_failed.publish(exc)
            return exc
        return None

    def close(self) -> None:
        self.transport.close()

    # ---- reconnect bookkeeping (driven by Reconnector) ----
    def note_reconnect_attempt(self, attempt: int) -> None:
        self._publish_status(reconnect_attempt=attempt)

    def note_reconnect_failed(self) -> None:
        self._publish_status(reconnect_failed=True)

    # ---- transport hooks ----
    def _on_open(self) -> None:
        with self._lock:
            self._state = State.READY
        self._publish_status(connected=True, reconnect_attempt=0, reconnect_failed=False)
        self.opened.publish(None)
        self.ready.publish(True)

    def _on_error(self, exc: Exception) -> None:
        with self._lock:
            self._state = State.DISCONNECTED
        self.ready.publish(False)
        self.connect_failed.publish(exc)

    def _on_close(self, info: CloseInfo) -> None:
        with self._lock:
            self._state = State.DISCONNECTED
        self.ready.publish(False)
        self._publish_status(connected=False)
        self.closed.publish(info)

    def _on_session(self, token: Optional[str], uuid: Optional[str]) -> None:
        self._context = Context(token=token, uuid=uuid)
        logger.debug("session credentials refreshed (uuid=%s)", uuid)

    def _publish_status(self, **changes) -> None:
        self.status.update(lambda status: status.evolve(**changes))
