import logging

from housepoints.realtime.bus import EventBus


def test_publish_without_subscribers_is_a_noop():
    bus = EventBus()
    assert bus.publish("points-updated", {"delta": 1}) == 0
    assert bus.subscriber_count("points-updated") == 0


def test_subscribers_only_see_later_events():
    bus = EventBus()
    bus.publish("class-updated", "before")

    received = []
    bus.subscribe("class-updated", received.append)
    assert bus.publish("class-updated", "after") == 1

    assert received == ["after"]


def test_every_subscriber_receives_each_event():
    bus = EventBus()
    first, second = [], []
    bus.subscribe("house-updated", first.append)
    bus.subscribe("house-updated", second.append)

    assert bus.publish("house-updated", 7) == 2
    assert first == [7]
    assert second == [7]


def test_returned_callable_unsubscribes_once():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe("pod-updated", received.append)

    unsubscribe()
    unsubscribe()
    bus.unsubscribe("pod-updated", received.append)
    bus.unsubscribe("never-subscribed", received.append)

    assert bus.publish("pod-updated", 1) == 0
    assert received == []


def test_failing_subscriber_does_not_stop_the_others(caplog):
    bus = EventBus()
    received = []

    def broken(_payload):
        raise RuntimeError("widget crashed")

    bus.subscribe("points-updated", broken)
    bus.subscribe("points-updated", received.append)

    with caplog.at_level(logging.ERROR, logger="housepoints.realtime.bus"):
        delivered = bus.publish("points-updated", "payload")

    assert delivered == 1
    assert received == ["payload"]
    assert "points-updated" in caplog.text


def test_subscriber_added_during_publish_waits_for_next_event():
    bus = EventBus()
    late = []

    def subscribe_late(_payload):
        bus.subscribe("class-updated", late.append)

    bus.subscribe("class-updated", subscribe_late)
    bus.publish("class-updated", 1)
    assert late == []

    bus.publish("class-updated", 2)
    assert late == [2]


def test_clear_removes_everything():
    bus = EventBus()
    bus.subscribe("a", lambda _: None)
    bus.subscribe("b", lambda _: None)
    bus.clear()
    assert bus.subscriber_count("a") == 0
    assert bus.publish("b") == 0


def test_same_handler_subscribed_twice_is_delivered_once():
    bus = EventBus()
    received = []
    bus.subscribe("house-updated", received.append)
    bus.subscribe("house-updated", received.append)

    assert bus.subscriber_count("house-updated") == 1
    assert bus.publish("house-updated", 1) == 1
    assert received == [1]

    bus.unsubscribe("house-updated", received.append)
    assert bus.publish("house-updated", 2) == 0


def test_early_subscribers_run_first():
    bus = EventBus()
    order = []
    bus.subscribe("class-updated", lambda _: order.append("widget"))
    bus.subscribe("class-updated", lambda _: order.append("cache"), early=True)
    bus.subscribe("class-updated", lambda _: order.append("other"))

    bus.publish("class-updated")

    assert order == ["cache", "widget", "other"]
