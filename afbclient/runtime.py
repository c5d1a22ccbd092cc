
from __future__ import annotations
import json
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, List, Optional

from .errors import SessionClosed
from .message import STATUS_CANCELLED, STATUS_FAILED, STATUS_TIMEOUT, Params, Reply
from .signals import BehaviorSignal, Unsubscribe
from .transport import Transport

logger = logging.getLogger(__name__)


def normalize_arguments(params: Params) -> Any:
    """
    Strings must hold JSON; empty, missing or unparseable arguments become {}.
    Anything else is passed through unchanged.
    """
    if params is None:
        return {}
    if isinstance(params, str):
        if not params.strip():
            return {}
        try:
            return json.loads(params)
        except ValueError:
            return {}
    return params


class CancelToken:
    """Cooperative cancellation for one or more calls."""

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()

    def add_callback(self, cb: Callable[[], None]) -> None:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(cb)
                return
        cb()


class _PendingCall:
    """One logical call: held until ready, sent once, settled once."""

    def __init__(self, transport: Transport, verb: str, args: Any):
        self.transport = transport
        self.verb = verb
        self.args = args
        self.future: "Future[Reply]" = Future()
        self.committed = False
        self.sent: Optional["Future[Reply]"] = None
        self.unsubscribe: Optional[Unsubscribe] = None
        self.timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def on_ready(self, ready: bool) -> None:
        if not ready:
            return
        with self._lock:
            if self.committed or self.future.done():
                return
            self.committed = True
        self._stop_gating()

        try:
            sent = self.transport.send(self.verb, self.args)
        except Exception as exc:
            self.settle(Reply.failure(STATUS_FAILED, f"{type(exc).__name__}: {exc}"))
            return
        with self._lock:
            self.sent = sent
        sent.add_done_callback(self._on_sent_done)

    def _on_sent_done(self, sent: "Future[Reply]") -> None:
        if sent.cancelled():
            return
        exc = sent.exception()
        if exc is None:
            self.settle(sent.result())
        elif isinstance(exc, SessionClosed):
            self.settle(Reply.failure(STATUS_CANCELLED, str(exc)))
        else:
            self.settle(Reply.failure(STATUS_FAILED, str(exc)))

    def settle(self, reply: Reply) -> bool:
        with self._lock:
            if self.future.done():
                return False
            self.future.set_result(reply)
            sent = self.sent
        self._stop_gating()
        if self.timer is not None:
            self.timer.cancel()
        if sent is not None and not sent.done():
            self.transport.discard(sent)
        return True

    def attach(self, unsubscribe: Unsubscribe) -> bool:
        """Keep the ready subscription if still waiting; returns True when held."""
        with self._lock:
            if not (self.committed or self.future.done()):
                self.unsubscribe = unsubscribe
                return True
        unsubscribe()
        return False

    def expire(self, timeout: float) -> None:
        if self.settle(Reply.failure(STATUS_TIMEOUT, f"{self.verb}: no reply within {timeout}s")):
            logger.warning("call %s timed out after %ss", self.verb, timeout)

    def cancel(self) -> None:
        if self.settle(Reply.failure(STATUS_CANCELLED, f"{self.verb}: cancelled")):
            logger.debug("call %s cancelled", self.verb)

    def _stop_gating(self) -> None:
        with self._lock:
            unsubscribe, self.unsubscribe = self.unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()


class CallCorrelator:
    """
    Turns call(verb, args) into exactly one transport send, issued only once
    the ready signal's latest value is True. The returned future always
    resolves with a Reply; failures come back error-shaped, never raised.
    """

    def __init__(self, transport: Transport, ready: BehaviorSignal[bool], *,
                 default_timeout: Optional[float] = None):
        self.transport = transport
        self.ready = ready
        self.default_timeout = default_timeout

    def call(self, verb: str, params: Params = None, *, timeout: Optional[float] = None,
             cancel: Optional[CancelToken] = None) -> "Future[Reply]":
        args = normalize_arguments(params)
        pending = _PendingCall(self.transport, verb, args)

        timeout = timeout if timeout is not None else self.default_timeout
        if timeout is not None:
            pending.timer = threading.Timer(timeout, pending.expire, args=(timeout,))
            pending.timer.daemon = True
            pending.timer.start()
        if cancel is not None:
            cancel.add_callback(pending.cancel)

        # A True replay sends synchronously inside subscribe().
        if pending.attach(self.ready.subscribe(pending.on_ready)):
            logger.debug("call %s held until the session is ready", verb)
        return pending.future
