"""Tests for x-afb-ws-json1 framing and reply shaping."""

import json

import pytest

from afbclient.message import STATUS_FAILED, MsgType, Reply
from afbclient.transport import Endpoint
from afbclient.wire import pack_call, pack_event, pack_reply, unpack_frame


def test_pack_call_layout():
    assert json.loads(pack_call("7", "hello/ping", {"a": 1})) == [2, "7", "hello/ping", {"a": 1}]


def test_unpack_reply_and_event():
    ok = unpack_frame(pack_reply("1", {"jtype": "afb-reply", "request": {"status": "success"}, "response": 5}))
    assert ok.code == MsgType.RETOK and ok.ident == "1"
    err = unpack_frame(pack_reply("2", {"request": {"status": "bad"}}, ok=False))
    assert err.code == MsgType.RETERR
    evt = unpack_frame(pack_event("foo/ping", [1, 2]))
    assert evt.code == MsgType.EVENT
    assert evt.ident == "foo/ping"
    assert evt.body["data"] == [1, 2]


def test_unpack_call_keeps_verb():
    frame = unpack_frame('[2,"3","foo/bar",{}]')
    assert frame.verb == "foo/bar"
    assert frame.body == {}


@pytest.mark.parametrize("raw", ["{}", "[9,\"1\",{}]", "[3,1,{}]", "[3]", "not json", "[2,\"1\",\"x\"]"])
def test_unpack_rejects_malformed(raw):
    with pytest.raises(ValueError):
        unpack_frame(raw)


def test_reply_from_success_body():
    body = {"jtype": "afb-reply", "request": {"status": "success", "info": "hi", "uuid": "u"}, "response": {"x": 1}}
    reply = Reply.from_body(body, ok=True)
    assert reply.ok
    assert reply.info == "hi"
    assert reply.response == {"x": 1}
    assert reply.request["uuid"] == "u"
    assert reply.raw is body


def test_reply_from_error_body_is_never_ok():
    assert Reply.from_body({"request": {"status": "success"}}, ok=False).status == STATUS_FAILED
    assert Reply.from_body({}, ok=False).status == STATUS_FAILED
    assert Reply.from_body("garbage", ok=True).ok


def test_reply_failure_is_error_shaped():
    reply = Reply.failure("timeout", "too slow")
    assert not reply.ok
    assert reply.raw == {"jtype": "afb-reply", "request": {"status": "timeout", "info": "too slow"}}


def test_endpoint_url():
    assert Endpoint().url() == "ws://localhost/api"
    ep = Endpoint(host="binder", port="1234", base="/api/")
    assert ep.url() == "ws://binder:1234/api"
    assert ep.url(token="HELLO") == "ws://binder:1234/api?x-afb-token=HELLO"
    assert ep.url(token="HELLO", uuid="u-1") == "ws://binder:1234/api?x-afb-token=HELLO&x-afb-uuid=u-1"
    assert Endpoint(secure=True).url().startswith("wss://")


def test_endpoint_with_target():
    ep = Endpoint(base="api").with_target("10.0.0.2", 8000)
    assert ep.url() == "ws://10.0.0.2:8000/api"
    assert ep.with_target("host").port is None
