"""Tests for Signal / BehaviorSignal."""

import logging

import pytest

from afbclient.signals import BehaviorSignal, Signal


def test_signal_delivers_only_future_values():
    sig = Signal("s")
    sig.publish(1)
    seen = []
    sig.subscribe(seen.append)
    sig.publish(2)
    sig.publish(3)
    assert seen == [2, 3]


def test_unsubscribe_stops_delivery_and_is_idempotent():
    sig = Signal()
    seen = []
    unsubscribe = sig.subscribe(seen.append)
    sig.publish("a")
    unsubscribe()
    unsubscribe()
    sig.publish("b")
    assert seen == ["a"]
    assert sig.listener_count() == 0


def test_behavior_signal_replays_latest_to_late_subscriber():
    sig = BehaviorSignal(name="ready")
    sig.publish(False)
    sig.publish(True)
    seen = []
    sig.subscribe(seen.append)
    assert seen == [True]
    assert sig.value is True


def test_behavior_signal_without_value_does_not_replay():
    sig = BehaviorSignal()
    seen = []
    sig.subscribe(seen.append)
    assert seen == []
    assert not sig.has_value
    with pytest.raises(LookupError):
        sig.value


def test_behavior_signal_initial_value():
    sig = BehaviorSignal(0)
    seen = []
    sig.subscribe(seen.append)
    sig.update(lambda v: v + 1)
    assert seen == [0, 1]


def test_failing_listener_does_not_break_others(caplog):
    sig = Signal("boom")
    seen = []

    def bad(_):
        raise RuntimeError("listener bug")

    sig.subscribe(bad)
    sig.subscribe(seen.append)
    with caplog.at_level(logging.ERROR, logger="afbclient.signals"):
        sig.publish(7)
    assert seen == [7]
    assert "boom" in caplog.text


def test_listener_may_unsubscribe_itself_during_delivery():
    sig = Signal()
    seen = []
    handle = {}

    def once(value):
        seen.append(value)
        handle["unsub"]()

    handle["unsub"] = sig.subscribe(once)
    sig.publish(1)
    sig.publish(2)
    assert seen == [1]
