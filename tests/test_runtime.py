"""Tests for the call correlator."""

from afbclient.message import STATUS_CANCELLED, STATUS_FAILED, STATUS_TIMEOUT, Reply
from afbclient.runtime import CallCorrelator, CancelToken
from afbclient.signals import BehaviorSignal


def _correlator(transport, ready=None, **kwargs):
    return CallCorrelator(transport, ready or BehaviorSignal(name="ready"), **kwargs)


def test_call_when_ready_sends_once_and_resolves_once(transport):
    transport.opened = True
    ready = BehaviorSignal(True)
    corr = _correlator(transport, ready)

    fut = corr.call("hello/ping", {"a": 1})
    assert transport.sent == [("hello/ping", {"a": 1})]

    transport.reply(0, response={"pong": True})
    reply = fut.result(timeout=1)
    assert reply.ok
    assert reply.response == {"pong": True}

    # later readiness flips do not resend
    ready.publish(False)
    ready.publish(True)
    assert len(transport.sent) == 1


def test_call_before_any_ready_is_held(transport):
    ready = BehaviorSignal()
    corr = _correlator(transport, ready)
    fut = corr.call("hello/ping", "")
    assert transport.sent == []
    assert not fut.done()

    transport.opened = True
    ready.publish(True)
    assert transport.sent == [("hello/ping", {})]
    assert ready.listener_count() == 0


def test_call_while_not_ready_waits_for_next_true(transport):
    ready = BehaviorSignal(False)
    corr = _correlator(transport, ready)
    fut = corr.call("hello/ping", '{"x": 2}')
    ready.publish(False)
    assert transport.sent == []

    transport.opened = True
    ready.publish(True)
    ready.publish(True)
    assert transport.sent == [("hello/ping", {"x": 2})]
    transport.reply(0, response=1)
    assert fut.result(timeout=1).response == 1


def test_remote_error_reply_resolves_normally(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    fut = corr.call("hello/fail", {})
    transport.reply(0, status="invalid-request", info="bad args")
    reply = fut.result(timeout=1)
    assert not reply.ok
    assert reply.status == "invalid-request"
    assert reply.info == "bad args"


def test_transport_failure_becomes_error_shaped_reply(transport):
    # ready says True but the socket is gone: send fails with NotConnectedError
    transport.opened = False
    corr = _correlator(transport, BehaviorSignal(True))
    reply = corr.call("hello/ping", {}).result(timeout=1)
    assert reply.status == STATUS_FAILED
    assert reply.raw["request"]["status"] == STATUS_FAILED
    assert "hello/ping" in reply.info


def test_send_raising_becomes_error_shaped_reply(transport):
    def boom(verb, args):
        raise OSError("broken pipe")
    transport.send = boom
    corr = _correlator(transport, BehaviorSignal(True))
    reply = corr.call("hello/ping", {}).result(timeout=1)
    assert reply.status == STATUS_FAILED
    assert "broken pipe" in reply.info


def test_in_flight_call_cancelled_on_session_close(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    fut = corr.call("hello/slow", {})
    transport.simulate_close()
    reply = fut.result(timeout=1)
    assert reply.status == STATUS_CANCELLED


def test_timeout_resolves_held_call(transport):
    corr = _correlator(transport, BehaviorSignal(False))
    reply = corr.call("hello/ping", {}, timeout=0.05).result(timeout=2)
    assert reply.status == STATUS_TIMEOUT
    assert transport.sent == []


def test_timeout_discards_in_flight_call(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    fut = corr.call("hello/ping", {}, timeout=0.05)
    reply = fut.result(timeout=2)
    assert reply.status == STATUS_TIMEOUT
    assert transport.discarded == [transport.futures[0]]


def test_default_timeout_applies(transport):
    corr = _correlator(transport, BehaviorSignal(False), default_timeout=0.05)
    assert corr.call("hello/ping").result(timeout=2).status == STATUS_TIMEOUT


def test_no_reply_after_timeout_is_ignored(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    fut = corr.call("hello/ping", {}, timeout=0.05)
    assert fut.result(timeout=2).status == STATUS_TIMEOUT
    # the transport future was cancelled; a late reply cannot resolve it twice
    assert transport.futures[0].cancelled()


def test_cancel_token_resolves_held_call(transport):
    ready = BehaviorSignal(False)
    corr = _correlator(transport, ready)
    token = CancelToken()
    fut = corr.call("hello/ping", {}, cancel=token)
    token.cancel()
    assert fut.result(timeout=1).status == STATUS_CANCELLED

    transport.opened = True
    ready.publish(True)
    assert transport.sent == []


def test_already_cancelled_token_never_sends(transport):
    transport.opened = True
    token = CancelToken()
    token.cancel()
    corr = _correlator(transport, BehaviorSignal(True))
    assert corr.call("hello/ping", {}, cancel=token).result(timeout=1).status == STATUS_CANCELLED
    assert transport.sent == []


def test_cancel_after_reply_is_a_noop(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    token = CancelToken()
    fut = corr.call("hello/ping", {}, cancel=token)
    transport.reply(0, response="ok")
    token.cancel()
    assert fut.result(timeout=1).response == "ok"


def test_concurrent_calls_resolve_out_of_order(transport):
    transport.opened = True
    corr = _correlator(transport, BehaviorSignal(True))
    first = corr.call("a/one", {})
    second = corr.call("a/two", {})
    transport.reply(1, response=2)
    assert second.done() and not first.done()
    transport.reply(0, response=1)
    assert first.result(timeout=1).response == 1
    assert second.result(timeout=1).response == 2


def test_held_calls_survive_failed_handshake(ready_client, transport):
    transport.simulate_close()
    fut = ready_client.invoke("hello/ping", {})
    ready_client.connect()
    transport.simulate_error()
    assert transport.sent == []

    ready_client.connect()
    transport.simulate_open()
    assert transport.sent == [("hello/ping", {})]
    transport.reply(0, response="pong")
    assert isinstance(fut.result(timeout=1), Reply)
