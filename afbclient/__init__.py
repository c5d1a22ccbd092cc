"""
Public API:
- AfbClient: facade (initialize, connect, invoke, subscribe, discovery, streams)
- Afb: one-liner factory returning a connected AfbClient
- ConnectionStateMachine: lifecycle, Status and readiness signals
- CallCorrelator, CancelToken, normalize_arguments: gated calls
- EventChannel, Subscription: event fan-out
- Discovery: monitor-based introspection
- Reconnector: cooperative auto-reconnect
- Transport, Endpoint: contract transports implement; WebSocketTransport lives
  in afbclient.transports.wsclient
- Signal, BehaviorSignal: publish/subscribe primitives
- pack_call, unpack_frame: x-afb-ws-json1 framing
"""

# Facade
from .client import AfbClient
from .factory import Afb

# Runtime pieces
from .connection import ConnectionStateMachine, State
from .runtime import CallCorrelator, CancelToken, normalize_arguments
from .events import EventChannel, Subscription
from .discovery import Discovery, MONITOR_API
from .reconnect import Reconnector
from .signals import BehaviorSignal, Signal

# Transport contract & framing
from .transport import Endpoint, Transport
from .wire import PROTOCOL, pack_call, unpack_frame

# Values & errors
from .message import (
    ApiDescriptor,
    ApiInfo,
    CloseInfo,
    Context,
    Event,
    MsgType,
    Reply,
    Status,
    VerbDescriptor,
)
from .config import ClientConfig, load_config
from .errors import (
    AfbError,
    ConfigurationError,
    ConnectError,
    NotConnectedError,
    SchemaError,
    SessionClosed,
    TransportError,
)

__all__ = [
    "AfbClient",
    "Afb",
    "ConnectionStateMachine",
    "State",
    "CallCorrelator",
    "CancelToken",
    "normalize_arguments",
    "EventChannel",
    "Subscription",
    "Discovery",
    "MONITOR_API",
    "Reconnector",
    "BehaviorSignal",
    "Signal",
    "Endpoint",
    "Transport",
    "PROTOCOL",
    "pack_call",
    "unpack_frame",
    "ApiDescriptor",
    "ApiInfo",
    "CloseInfo",
    "Context",
    "Event",
    "MsgType",
    "Reply",
    "Status",
    "VerbDescriptor",
    "ClientConfig",
    "load_config",
    "AfbError",
    "ConfigurationError",
    "ConnectError",
    "NotConnectedError",
    "SchemaError",
    "SessionClosed",
    "TransportError",
]

__version__ = "0.1.0"
