
from __future__ import annotations
from typing import Any, Protocol as TypingProtocol

import json

class Codec(TypingProtocol):
    name: str
    def dumps(self, obj: Any) -> str: ...
    def loads(self, data: str) -> Any: ...

class JSONCodec:
    """Text codec for WebSocket text frames."""
    name = "json"
    def dumps(self, obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))
    def loads(self, data: str) -> Any:
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        return json.loads(data)

