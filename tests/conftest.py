"""
Shared fixtures for afbclient tests.
"""

from concurrent.futures import Future
from typing import Any, List, Optional, Tuple

import pytest

from afbclient.client import AfbClient
from afbclient.config import ClientConfig
from afbclient.errors import ConfigurationError, NotConnectedError, SessionClosed
from afbclient.message import CloseInfo, Event, Reply
from afbclient.transport import Endpoint, Transport


class FakeTransport(Transport):
    """Scripted transport: tests decide when the handshake, replies and events happen."""

    def __init__(self):
        super().__init__()
        self.endpoint: Optional[Endpoint] = None
        self.token: Optional[str] = None
        self.opening = False
        self.opened = False
        self.open_calls = 0
        self.close_calls = 0
        self.fail_open: Optional[Exception] = None
        self.sent: List[Tuple[str, Any]] = []
        self.futures: List["Future[Reply]"] = []
        self.discarded: List["Future[Reply]"] = []

    @property
    def is_open(self) -> bool:
        return self.opened

    def configure(self, endpoint, token=None):
        if self.opening or self.opened:
            raise ConfigurationError("open")
        self.endpoint = endpoint
        if token is not None:
            self.token = token

    def open(self):
        self.open_calls += 1
        if self.fail_open is not None:
            raise self.fail_open
        self.opening = True

    def send(self, verb, args):
        fut: "Future[Reply]" = Future()
        if not self.opened:
            fut.set_exception(NotConnectedError(verb))
            return fut
        self.sent.append((verb, args))
        self.futures.append(fut)
        return fut

    def discard(self, future):
        self.discarded.append(future)
        future.cancel()

    def close(self):
        self.close_calls += 1
        if self.opened:
            self.simulate_close(requested=True)
        self.opening = False

    # ---- scripting ----
    def simulate_open(self):
        self.opening = False
        self.opened = True
        self._emit("open")

    def simulate_error(self, exc: Optional[Exception] = None):
        self.opening = False
        self._emit("error", exc or ConnectionRefusedError("refused"))

    def simulate_close(self, code=1006, reason="gone", requested=False):
        self.opened = False
        pending = [f for f in self.futures if not f.done()]
        for fut in pending:
            fut.set_exception(SessionClosed(code, reason))
        self._emit("close", CloseInfo(code=code, reason=reason, requested=requested))

    def reply(self, index: int, response=None, status="success", info=None):
        body = {"jtype": "afb-reply", "request": {"status": status}}
        if info is not None:
            body["request"]["info"] = info
        if response is not None:
            body["response"] = response
        reply = Reply.from_body(body, status == "success")
        self.futures[index].set_result(reply)
        return reply

    def reply_to(self, verb: str, response=None, status="success"):
        for i, (sent_verb, _) in enumerate(self.sent):
            if sent_verb == verb and not self.futures[i].done():
                return self.reply(i, response, status)
        raise AssertionError(f"no pending call to {verb}")

    def emit_event(self, name: str, data=None):
        self._dispatch_event(Event(type="afb-event", name=name, data=data))


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    """Initialized client on a fake transport, not yet connected."""
    c = AfbClient(transport, ClientConfig())
    c.initialize("api", token="HELLO")
    return c


@pytest.fixture
def ready_client(client, transport):
    client.connect()
    transport.simulate_open()
    return client


@pytest.fixture
def monitor_apis():
    """monitor/get response with apis=false."""
    return {"apis": {"monitor": True, "foo": True, "bar": True}}


@pytest.fixture
def monitor_schema():
    """monitor/get response with apis=true: one non-reserved API 'foo'."""
    return {
        "apis": {
            "monitor": {
                "info": {"title": "monitor", "version": "1.0", "description": "introspection"},
                "paths": {},
            },
            "foo": {
                "info": {"title": "Foo service", "version": "2.1", "description": "does foo"},
                "paths": {
                    "/foo/ping": {"get": {"responses": {"200": {"description": "pings"}}}},
                },
            },
        }
    }
