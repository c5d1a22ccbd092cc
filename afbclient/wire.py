from __future__ import annotations
from typing import Any

from .codecs import Codec, JSONCodec
from .message import Frame, MsgType

PROTOCOL = "x-afb-ws-json1"

_JSON = JSONCodec()

def pack_call(callid: str, verb: str, args: Any, codec: Codec = _JSON) -> str:
    return codec.dumps([int(MsgType.CALL), callid, verb, args])

def pack_event(name: str, data: Any, codec: Codec = _JSON) -> str:
    body = {"jtype": "afb-event", "event": name, "data": data}
    return codec.dumps([int(MsgType.EVENT), name, body])

def pack_reply(callid: str, body: Any, ok: bool = True, codec: Codec = _JSON) -> str:
    code = MsgType.RETOK if ok else MsgType.RETERR
    return codec.dumps([int(code), callid, body])

def unpack_frame(data: str, codec: Codec = _JSON) -> Frame:
    """Decode one inbound frame; raises ValueError on anything malformed."""
    arr = codec.loads(data)
    if not isinstance(arr, list) or len(arr) < 3:
        raise ValueError(f"not a frame: {arr!r}")
    try:
        code = MsgType(arr[0])
    except ValueError:
        raise ValueError(f"unknown frame code: {arr[0]!r}") from None
    ident = arr[1]
    if not isinstance(ident, str):
        raise ValueError(f"bad frame id: {ident!r}")

    if code == MsgType.CALL:
        if len(arr) < 4:
            raise ValueError("CALL frame without arguments")
        return Frame(code, ident, arr[3], verb=arr[2])
    return Frame(code, ident, arr[2])
