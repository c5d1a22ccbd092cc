from __future__ import annotations
import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, Optional

import websocket

from ..codecs import Codec, JSONCodec
from ..errors import ConfigurationError, ConnectError, NotConnectedError, SessionClosed, TransportError
from ..message import CloseInfo, Event, MsgType, Reply
from ..transport import Endpoint, Transport
from ..wire import PROTOCOL, pack_call, unpack_frame

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    """Transport over one WebSocket speaking x-afb-ws-json1.

    Mapping:
    - call -> [2, id, "api/verb", args]; the reply [3|4, id, body] resolves
      the future registered under id.
    - event -> [5, "api/name", body]; dispatched to event listeners.

    websocket-client runs the socket on a daemon thread; every hook and
    listener is invoked from that thread.
    """

    def __init__(self, endpoint: Optional[Endpoint] = None, token: Optional[str] = None, *,
                 codec: Optional[Codec] = None, header: Optional[Dict[str, str]] = None,
                 sslopt: Optional[Dict[str, Any]] = None, ping_interval: float = 0,
                 ping_timeout: Optional[float] = None):
        super().__init__()
        self.endpoint = endpoint or Endpoint()
        self.token = token
        self.uuid: Optional[str] = None
        self.codec = codec or JSONCodec()
        self.header = header
        self.sslopt = sslopt
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

        self._app: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None
        self._opened = False     # handshake done on the current socket
        self._errored = False
        self._closing = False
        self._counter = 0
        self._pending: Dict[str, "Future[Reply]"] = {}
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._opened

    def configure(self, endpoint: Endpoint, token: Optional[str] = None) -> None:
        with self._lock:
            if self._app is not None:
                raise ConfigurationError("cannot reconfigure a transport while a session is open")
            self.endpoint = endpoint
            if token is not None:
                self.token = token

    def open(self) -> None:
        with self._lock:
            if self._app is not None:
                raise ConnectError("a session is already open or connecting")
            url = self.endpoint.url(self.token, self.uuid)
            app = websocket.WebSocketApp(
                url,
                header=self.header,
                subprotocols=[PROTOCOL],
                on_open=self._on_ws_open,
                on_message=self._on_ws_message,
                on_error=self._on_ws_error,
                on_close=self._on_ws_close,
            )
            self._app = app
            self._opened = False
            self._errored = False
            self._closing = False

        logger.info("opening %s", url)
        thread = threading.Thread(target=self._run, args=(app,), name="afb-ws", daemon=True)
        try:
            thread.start()
        except RuntimeError as exc:
            with self._lock:
                self._app = None
            raise ConnectError(f"cannot start socket thread: {exc}") from exc
        self._thread = thread

    def _run(self, app: websocket.WebSocketApp) -> None:
        kwargs: Dict[str, Any] = {"ping_interval": self.ping_interval}
        if self.ping_timeout is not None:
            kwargs["ping_timeout"] = self.ping_timeout
        if self.sslopt is not None:
            kwargs["sslopt"] = self.sslopt
        app.run_forever(**kwargs)

    def send(self, verb: str, args: Any) -> "Future[Reply]":
        fut: "Future[Reply]" = Future()
        with self._lock:
            app = self._app
            if app is None or not self._opened:
                fut.set_exception(NotConnectedError(f"cannot call {verb}: session is not open"))
                return fut
            self._counter += 1
            callid = str(self._counter)
            self._pending[callid] = fut

        try:
            frame = pack_call(callid, verb, args, self.codec)
            logger.debug("-> %s %s", callid, verb)
            app.send(frame)
        except (websocket.WebSocketException, OSError, TypeError, ValueError) as exc:
            with self._lock:
                self._pending.pop(callid, None)
            if fut.set_running_or_notify_cancel():
                fut.set_exception(TransportError(f"cannot send {verb}: {exc}"))
        return fut

    def discard(self, future: "Future[Reply]") -> None:
        with self._lock:
            for callid, fut in list(self._pending.items()):
                if fut is future:
                    del self._pending[callid]
                    break
        future.cancel()

    def close(self) -> None:
        with self._lock:
            app = self._app
            if app is None:
                return
            self._closing = True
        app.close()

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    # ---- websocket-client callbacks ----
    def _on_ws_open(self, ws) -> None:
        with self._lock:
            if ws is not self._app:
                return
            self._opened = True
        logger.info("session open on %s", self.endpoint.url())
        self._emit("open")

    def _on_ws_message(self, ws, message) -> None:
        try:
            frame = unpack_frame(message, self.codec)
        except ValueError as exc:
            logger.warning("dropping malformed frame: %s", exc)
            return

        if frame.code in (MsgType.RETOK, MsgType.RETERR):
            reply = Reply.from_body(frame.body, frame.code == MsgType.RETOK)
            self._refresh_session(reply.request)
            with self._lock:
                fut = self._pending.pop(frame.ident, None)
            if fut is None:
                logger.warning("reply for unknown call %s", frame.ident)
                return
            logger.debug("<- %s %s", frame.ident, reply.status)
            if fut.set_running_or_notify_cancel():
                fut.set_result(reply)
            return

        if frame.code == MsgType.EVENT:
            body = frame.body if isinstance(frame.body, dict) else {"data": frame.body}
            event = Event(
                type=body.get("jtype", "afb-event"),
                name=body.get("event") or frame.ident,
                data=body.get("data"),
            )
            logger.debug("<- event %s", event.name)
            self._dispatch_event(event)
            return

        logger.warning("ignoring %s frame from server (%s)", frame.code.name, frame.verb)

    def _on_ws_error(self, ws, error) -> None:
        with self._lock:
            if ws is not self._app:
                return
            self._errored = True
            opened = self._opened
            pending = []
            if not opened:
                # handshake failed; the error hook may open a new socket
                pending = list(self._pending.values())
                self._pending.clear()
                self._app = None
        if opened:
            logger.warning("socket error: %s", error)
            return
        for fut in pending:
            if fut.set_running_or_notify_cancel():
                fut.set_exception(SessionClosed(None, str(error)))
        logger.error("can not open websocket: %s", error)
        self._emit("error", ConnectError(str(error)))

    def _on_ws_close(self, ws, code=None, reason=None) -> None:
        with self._lock:
            if ws is not self._app:
                return
            was_open, errored, requested = self._opened, self._errored, self._closing
            pending = list(self._pending.values())
            self._pending.clear()
            self._app = None
            self._opened = False

        for fut in pending:
            if fut.set_running_or_notify_cancel():
                fut.set_exception(SessionClosed(code, reason or ""))

        if was_open:
            logger.info("session closed (code=%s, reason=%r)", code, reason)
            self._emit("close", CloseInfo(code=code, reason=reason or "", requested=requested))
        elif not errored:
            self._emit("error", ConnectError("socket closed before the handshake completed"))

    def _refresh_session(self, request: Dict[str, Any]) -> None:
        token, uuid = request.get("token"), request.get("uuid")
        changed = False
        with self._lock:
            if token and token != self.token:
                self.token = token; changed = True
            if uuid and uuid != self.uuid:
                self.uuid = uuid; changed = True
        if changed:
            self._emit("session", self.token, self.uuid)
