from __future__ import annotations
import logging
from concurrent.futures import Future
from typing import Any, Callable, List, Optional

from .errors import SchemaError
from .futures import flat_then, gather, then
from .message import ApiDescriptor, ApiInfo, Params, Reply, VerbDescriptor

logger = logging.getLogger(__name__)

MONITOR_API = "monitor"
MONITOR_GET = "monitor/get"
INFO_VERB = "info"

CallFn = Callable[[str, Params], "Future[Reply]"]


def dig(obj: Any, *path: str) -> Any:
    """obj[path[0]][path[1]]...; raises SchemaError naming the first missing step."""
    for i, key in enumerate(path):
        if not isinstance(obj, dict) or key not in obj:
            raise SchemaError(path[: i + 1])
        obj = obj[key]
    return obj


def api_names(response: Any) -> List[str]:
    return [name for name in dig(response, "apis") if name != MONITOR_API]


def api_descriptors(response: Any) -> List[ApiDescriptor]:
    apis = dig(response, "apis")
    out: List[ApiDescriptor] = []
    for name, schema in apis.items():
        if name == MONITOR_API:
            continue
        try:
            out.append(ApiDescriptor(
                api=name,
                title=dig(schema, "info", "title"),
                version=dig(schema, "info", "version"),
                description=dig(schema, "info", "description"),
                verbs=verb_descriptors(schema),
            ))
        except SchemaError as exc:
            raise SchemaError(("apis", name) + exc.path) from None
    return out


def verb_descriptors(schema: Any) -> List[VerbDescriptor]:
    paths = dig(schema, "paths")
    verbs: List[VerbDescriptor] = []
    for path, doc in paths.items():
        try:
            description = dig(doc, "get", "responses", "200", "description")
        except SchemaError as exc:
            raise SchemaError(("paths", path) + exc.path) from None
        verbs.append(VerbDescriptor(verb=path, query="", description=description))
    return verbs


class Discovery:
    """
    Introspection of the remote binder through the monitor API.

    call: callable(verb, args) -> Future[Reply] (typically CallCorrelator.call)
    """

    def __init__(self, call: CallFn):
        self._call = call

    def _monitor(self, full: bool) -> "Future[Any]":
        return then(self._call(MONITOR_GET, {"apis": full}), _response_of)

    def list_api_names(self) -> "Future[List[str]]":
        """API names in the order the binder lists them, monitor excluded."""
        return then(self._monitor(False), api_names)

    def discover(self) -> "Future[List[ApiDescriptor]]":
        return then(self._monitor(True), api_descriptors)

    def list_api_infos(self, include_errors: bool = False) -> "Future[List[ApiInfo]]":
        """
        One concurrent "<api>/info" call per API, joined. APIs whose reply has
        no response are left out (or reported with their error reply when
        include_errors is set).
        """
        def _fan_out(names: List[str]) -> "Future[List[ApiInfo]]":
            calls = [self._call(f"{name}/{INFO_VERB}", {}) for name in names]
            return then(gather(calls), lambda replies: self._collect(names, replies, include_errors))
        return flat_then(self.list_api_names(), _fan_out)

    @staticmethod
    def _collect(names: List[str], replies: List[Reply], include_errors: bool) -> List[ApiInfo]:
        infos: List[ApiInfo] = []
        for name, reply in zip(names, replies):
            if reply.response is not None:
                infos.append(ApiInfo(api=name, info=reply.response))
                continue
            logger.warning("no info from %s (status=%s, info=%s)", name, reply.status, reply.info)
            if include_errors:
                infos.append(ApiInfo(api=name, error=reply))
        return infos


def _response_of(reply: Reply) -> Any:
    if reply.response is None:
        raise SchemaError(("response",))
    return reply.response


def find_api(descriptors: List[ApiDescriptor], name: str) -> Optional[ApiDescriptor]:
    for descriptor in descriptors:
        if descriptor.api == name:
            return descriptor
    return None
