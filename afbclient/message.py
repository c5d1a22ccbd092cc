from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union
from enum import IntEnum

# Frame codes of the x-afb-ws-json1 subprotocol
class MsgType(IntEnum):
    CALL   = 2
    RETOK  = 3
    RETERR = 4
    EVENT  = 5

# Reply statuses; anything else comes from the remote side
STATUS_SUCCESS   = "success"
STATUS_FAILED    = "failed"      # transport failure during the call
STATUS_CANCELLED = "cancelled"   # abandoned by close() or a CancelToken
STATUS_TIMEOUT   = "timeout"     # call deadline elapsed

@dataclass(frozen=True)
class Frame:
    """
    One decoded frame. 'ident' is the call id for CALL/RETOK/RETERR
    and the event name for EVENT.
    """
    code: MsgType
    ident: str
    body: Any
    verb: Optional[str] = None   # CALL only

@dataclass(frozen=True)
class Reply:
    status: str
    info: Optional[str] = None
    response: Any = None
    raw: Any = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def request(self) -> Dict[str, Any]:
        if isinstance(self.raw, dict) and isinstance(self.raw.get("request"), dict):
            return self.raw["request"]
        return {}

    @staticmethod
    def from_body(body: Any, ok: bool) -> "Reply":
        """Shape a RETOK/RETERR body; a missing status defaults from the frame code."""
        request = body.get("request") if isinstance(body, dict) else None
        if not isinstance(request, dict):
            request = {}
        status = request.get("status") or (STATUS_SUCCESS if ok else STATUS_FAILED)
        if not ok and status == STATUS_SUCCESS:
            status = STATUS_FAILED
        response = body.get("response") if isinstance(body, dict) else None
        return Reply(status=status, info=request.get("info"), response=response, raw=body)

    @staticmethod
    def failure(status: str, info: str) -> "Reply":
        """Error-shaped reply for outcomes decided locally (never sent by the remote)."""
        raw = {"jtype": "afb-reply", "request": {"status": status, "info": info}}
        return Reply(status=status, info=info, raw=raw)

@dataclass(frozen=True)
class Event:
    type: str
    name: str
    data: Any = None

    @property
    def api(self) -> str:
        return self.name.split("/", 1)[0]

@dataclass(frozen=True)
class Status:
    connected: bool = False
    reconnect_attempt: int = 0
    reconnect_failed: bool = False

    def evolve(self, **changes) -> "Status":
        return replace(self, **changes)

@dataclass(frozen=True)
class Context:
    token: Optional[str] = None
    uuid: Optional[str] = None   # assigned by the remote after the first handshake

@dataclass(frozen=True)
class CloseInfo:
    code: Optional[int] = None
    reason: str = ""
    requested: bool = False      # True when caused by disconnect()

@dataclass(frozen=True)
class VerbDescriptor:
    verb: str
    query: str
    description: str

@dataclass(frozen=True)
class ApiDescriptor:
    api: str
    title: str
    version: str
    description: str
    verbs: List[VerbDescriptor] = field(default_factory=list)

@dataclass(frozen=True)
class ApiInfo:
    api: str
    info: Any = None
    error: Optional[Reply] = None

Params = Union[Dict[str, Any], List[Any], str, None]
