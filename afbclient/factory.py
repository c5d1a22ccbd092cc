from __future__ import annotations
from typing import Any, Optional, Union

from .client import AfbClient
from .codecs import JSONCodec
from .config import load_config
from .transport import Transport

def Afb(base: Optional[str] = None,
        *,
        host: Optional[str] = None,
        port: Optional[Union[str, int]] = None,
        token: Optional[str] = None,
        transport: Union[str, Transport] = "websocket",
        codec: Union[str, Any] = "json",
        auto_connect: bool = True,
        auto_reconnect: Optional[bool] = None,
        call_timeout_s: Optional[float] = None,
        **transport_kwargs) -> AfbClient:
    """
    One-liner factory:
      Afb("api", host="localhost", port=1234, token="HELLO")
      Afb(transport=my_transport_instance, auto_connect=False)

    - base/host/port/token: binder location and credentials; unset values
      come from the AFB_* environment (see config.load_config)
    - transport: "websocket" | Transport instance
    - codec: "json" | Codec instance (websocket transport only)
    - auto_connect: start the handshake immediately
    - auto_reconnect: reopen dropped sessions
    - **transport_kwargs: passed to the transport constructor
    """
    config = load_config(base=base, host=host, port=None if port is None else str(port), token=token,
                         auto_reconnect=auto_reconnect, call_timeout_s=call_timeout_s)

    # Resolve transport
    if isinstance(transport, str):
        tlabel = transport.lower()
        if tlabel in ("websocket", "ws"):
            from .transports.wsclient import WebSocketTransport
            if isinstance(codec, str):
                if codec.lower() != JSONCodec.name:
                    raise ValueError(f"Unknown codec: {codec}")
                codec = JSONCodec()
            t = WebSocketTransport(codec=codec, **transport_kwargs)
        else:
            raise ValueError(f"Unknown transport label: {transport}")
    else:
        t = transport

    client = AfbClient(t, config)
    client.initialize()

    if auto_connect:
        client.connect()

    return client
