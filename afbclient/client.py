from __future__ import annotations
import logging
from concurrent.futures import Future
from dataclasses import replace
from typing import List, Optional

from .config import ClientConfig
from .connection import ConnectionStateMachine
from .discovery import Discovery
from .errors import ConfigurationError, ConnectError
from .events import DEFAULT_QUEUE_SIZE, EventChannel, Subscription
from .message import ApiDescriptor, ApiInfo, CloseInfo, Context, Event, Params, Reply, Status
from .reconnect import Reconnector
from .runtime import CallCorrelator, CancelToken
from .signals import BehaviorSignal, Signal
from .transport import Endpoint, Transport

logger = logging.getLogger(__name__)


class AfbClient:
    """
    Client of one application framework binder over a single WebSocket.

    initialize() must precede everything else; it wires the state machine,
    the call correlator, the event channel and discovery around the
    transport and exposes the streams:

      ws_connect, ws_disconnect, ws_event   plain signals
      status, init_done, auto_reconnect     replay-latest signals
    """

    def __init__(self, transport: Optional[Transport] = None, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self._transport = transport
        self._machine: Optional[ConnectionStateMachine] = None
        self._correlator: Optional[CallCorrelator] = None
        self._events: Optional[EventChannel] = None
        self._discovery: Optional[Discovery] = None
        self._reconnector: Optional[Reconnector] = None
        self._endpoint = self.config.endpoint()

    def initialize(self, base: Optional[str] = None, token: Optional[str] = None) -> None:
        if self._machine is not None:
            raise ConfigurationError("client is already initialized")
        if base is not None:
            self._endpoint = replace(self._endpoint, base=base)
        token = token if token is not None else self.config.token

        if self._transport is None:
            from .transports.wsclient import WebSocketTransport
            self._transport = WebSocketTransport()
        machine = ConnectionStateMachine(self._transport, token=token)
        machine.configure(self._endpoint, token)

        self._machine = machine
        self._correlator = CallCorrelator(self._transport, machine.ready,
                                          default_timeout=self.config.call_timeout_s)
        self._events = EventChannel(self._transport, machine.closed)
        self._discovery = Discovery(self._correlator.call)
        self._reconnector = Reconnector(machine,
                                        delay_s=self.config.reconnect_delay_s,
                                        max_delay_s=self.config.reconnect_max_delay_s,
                                        max_attempts=self.config.reconnect_max_attempts)
        self._reconnector.start()
        machine.auto_reconnect.publish(self.config.auto_reconnect)
        logger.debug("initialized for %s", self._endpoint.url())

    def _check_initialized(self) -> None:
        if self._machine is None:
            raise ConfigurationError("initialize() must be called first")

    @property
    def machine(self) -> ConnectionStateMachine:
        self._check_initialized()
        return self._machine

    @property
    def transport(self) -> Transport:
        return self.machine.transport

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def context(self) -> Context:
        return self.machine.context

    # ---- streams ----
    @property
    def ws_connect(self) -> Signal[None]:
        return self.machine.opened

    @property
    def ws_disconnect(self) -> Signal[CloseInfo]:
        return self.machine.closed

    @property
    def ws_event(self) -> Signal[Event]:
        return self.machine.events

    @property
    def status(self) -> BehaviorSignal[Status]:
        return self.machine.status

    @property
    def init_done(self) -> BehaviorSignal[bool]:
        return self.machine.ready

    @property
    def auto_reconnect(self) -> BehaviorSignal[bool]:
        return self.machine.auto_reconnect

    # ---- lifecycle ----
    def set_target(self, location: str, port: Optional[str] = None) -> None:
        endpoint = self._endpoint.with_target(location, port)
        if self._machine is not None:
            self._machine.configure(endpoint)
        self._endpoint = endpoint

    def set_auto_reconnect(self, enabled: bool) -> None:
        self.machine.auto_reconnect.publish(bool(enabled))

    def connect(self) -> Optional[ConnectError]:
        """Begin the handshake; returns at once, the outcome arrives via init_done."""
        return self.machine.open()

    def disconnect(self) -> None:
        if self._machine is None:
            return
        self._machine.close()

    def close(self) -> None:
        """Disconnect and end every event subscription."""
        if self._reconnector is not None:
            self._reconnector.stop()
        self.disconnect()
        if self._events is not None:
            self._events.close_all()

    def __enter__(self) -> "AfbClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ---- calls / events ----
    def invoke(self, verb: str, args: Params = None, *, timeout: Optional[float] = None,
               cancel: Optional[CancelToken] = None) -> "Future[Reply]":
        self._check_initialized()
        return self._correlator.call(verb, args, timeout=timeout, cancel=cancel)

    def subscribe(self, event_name: str, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscription:
        self._check_initialized()
        return self._events.subscribe(event_name, maxsize)

    # ---- discovery ----
    def list_apis(self) -> "Future[List[str]]":
        self._check_initialized()
        return self._discovery.list_api_names()

    def discover_apis(self) -> "Future[List[ApiDescriptor]]":
        self._check_initialized()
        return self._discovery.discover()

    def list_api_infos(self, include_errors: bool = False) -> "Future[List[ApiInfo]]":
        self._check_initialized()
        return self._discovery.list_api_infos(include_errors=include_errors)
