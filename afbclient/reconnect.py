from __future__ import annotations
import logging
import threading
from typing import List, Optional

from .connection import ConnectionStateMachine
from .message import CloseInfo
from .signals import Unsubscribe

logger = logging.getLogger(__name__)


class Reconnector:
    """
    Reopen dropped sessions while the machine's auto_reconnect flag is True.

    Closes requested through disconnect() are left alone. Attempt n waits
    delay_s * 2**(n-1) seconds (capped at max_delay_s); after max_attempts
    consecutive failures the status reports reconnect_failed and retries stop
    until the next successful open.
    """

    def __init__(self, machine: ConnectionStateMachine, *, delay_s: float = 1.0,
                 max_delay_s: float = 30.0, max_attempts: int = 10):
        self._machine = machine
        self._delay = max(0.0, float(delay_s))
        self._max_delay = max(self._delay, float(max_delay_s))
        self._max_attempts = max(1, int(max_attempts))
        self._attempt = 0
        self._enabled = False
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._unsubs: List[Unsubscribe] = []

    @property
    def attempt(self) -> int:
        return self._attempt

    def start(self) -> None:
        if self._unsubs:
            return
        m = self._machine
        self._unsubs = [
            m.auto_reconnect.subscribe(self._on_flag),
            m.opened.subscribe(self._on_opened),
            m.closed.subscribe(self._on_closed),
            m.connect_failed.subscribe(self._on_failed),
        ]

    def stop(self) -> None:
        for unsub in self._unsubs:
            unsub()
        self._unsubs = []
        self._cancel_timer()

    def backoff(self, attempt: int) -> float:
        return min(self._max_delay, self._delay * (2 ** max(0, attempt - 1)))

    # ---- signal handlers ----
    def _on_flag(self, enabled: bool) -> None:
        self._enabled = bool(enabled)
        if not self._enabled:
            self._cancel_timer()

    def _on_opened(self, _) -> None:
        with self._lock:
            if self._attempt:
                logger.info("reconnected after %d attempt(s)", self._attempt)
            self._attempt = 0
        self._cancel_timer()

    def _on_closed(self, info: CloseInfo) -> None:
        if info.requested:
            return
        self._schedule()

    def _on_failed(self, exc: Exception) -> None:
        # only failures of our own attempts are retried
        with self._lock:
            retrying = self._attempt > 0
        if retrying:
            self._schedule()

    def _schedule(self) -> None:
        if not self._enabled:
            return
        with self._lock:
            if self._timer is not None:
                return
            self._attempt += 1
            attempt = self._attempt
            if attempt > self._max_attempts:
                exhausted = True
            else:
                exhausted = False
                delay = self.backoff(attempt)
                timer = self._timer = threading.Timer(delay, self._reopen)
                timer.daemon = True
        if exhausted:
            logger.error("giving up after %d reconnect attempt(s)", self._max_attempts)
            self._machine.note_reconnect_failed()
            return
        logger.info("reconnect attempt %d in %.1fs", attempt, delay)
        self._machine.note_reconnect_attempt(attempt)
        timer.start()

    def _reopen(self) -> None:
        with self._lock:
            self._timer = None
        if not self._enabled:
            return
        self._machine.open()

    def _cancel_timer(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
