"""Unit tests for the event channel."""

import pytest

from emc.events import Event, EventTarget


@pytest.mark.unit
@pytest.mark.events
def test_fire_calls_handlers_in_subscription_order():
    """Handlers of a type run in the order they subscribed"""
    target = EventTarget()
    calls = []
    target.on("ping", lambda event: calls.append("first"))
    target.on("ping", lambda event: calls.append("second"))

    target.fire("ping")

    assert calls == ["first", "second"]


@pytest.mark.unit
@pytest.mark.events
def test_payload_becomes_event_attributes():
    """Payload keywords are readable attributes of the dispatched event"""
    target = EventTarget()
    seen = []
    target.on("change", seen.append)

    event = target.fire("change", name="x", new_value=1)

    assert seen == [event]
    assert event.type == "change"
    assert event.target is target
    assert event.name == "x"
    assert event.new_value == 1


@pytest.mark.unit
@pytest.mark.events
def test_handlers_can_rewrite_payload():
    """The returned event reflects attributes rewritten by handlers"""
    target = EventTarget()
    target.on("beforechange", lambda event: setattr(event, "actual_value", 2))

    event = target.fire("beforechange", actual_value=1)

    assert event.actual_value == 2


@pytest.mark.unit
@pytest.mark.events
def test_prevent_default():
    """prevent_default is observable through is_default_prevented"""
    target = EventTarget()
    assert not target.fire("beforechange").is_default_prevented()

    target.on("beforechange", lambda event: event.prevent_default())

    assert target.fire("beforechange").is_default_prevented()


@pytest.mark.unit
@pytest.mark.events
def test_events_only_reach_their_type(recorder):
    target = EventTarget()
    target.on("change:x", recorder)

    target.fire("change:y", name="y")
    target.fire("change", name="x")
    target.fire("change:x", name="x")

    assert recorder.names() == ["x"]


@pytest.mark.unit
@pytest.mark.events
def test_unsubscribe_pause_and_resume(recorder):
    target = EventTarget()
    subscription = target.on("ping", recorder)

    subscription.pause()
    target.fire("ping", name="paused")
    subscription.resume()
    target.fire("ping", name="resumed")
    subscription.unsubscribe()
    target.fire("ping", name="gone")

    assert recorder.names() == ["resumed"]
    assert not target.has_listeners("ping")


@pytest.mark.unit
@pytest.mark.events
def test_off_removes_one_handler_or_all(make_recorder):
    target = EventTarget()
    first, second = make_recorder(), make_recorder()
    target.on("ping", first)
    target.on("ping", second)

    assert target.off("ping", first) == 1
    target.fire("ping", name="a")
    assert first.count == 0
    assert second.count == 1

    assert target.off("ping") == 1
    assert target.off("ping") == 0


@pytest.mark.unit
@pytest.mark.events
def test_handler_subscribed_during_dispatch_waits_for_next_event(recorder):
    target = EventTarget()
    target.on("ping", lambda event: target.on("ping", recorder))

    target.fire("ping", name="first")
    assert recorder.count == 0

    target.fire("ping", name="second")
    assert recorder.names() == ["second"]


@pytest.mark.unit
@pytest.mark.events
def test_handler_errors_propagate():
    """An exception in a handler reaches the code that fired the event"""
    target = EventTarget()

    def fail(event):
        raise RuntimeError("boom")

    target.on("ping", fail)

    with pytest.raises(RuntimeError, match="boom"):
        target.fire("ping")


@pytest.mark.unit
@pytest.mark.events
def test_destroy_events(recorder):
    target = EventTarget()
    target.on("a", recorder)
    target.on("b", recorder)
    target.fire("a", name="a")

    assert target.has_listeners("a")
    assert target.has_listeners("b")

    target.destroy_events()
    assert not target.has_listeners("a")
    assert not target.has_listeners("b")
    target.fire("a", name="a")
    assert recorder.count == 1


@pytest.mark.unit
@pytest.mark.events
def test_event_repr():
    assert repr(Event("ping")) == "Event('ping')"
    assert repr(Event("change", name="x")) == "Event('change', name='x')"
