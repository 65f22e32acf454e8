"""
Tests for the execution event stream.
"""

from adaptive_twap.core.events import EventStream


def test_subscribers_receive_events_in_order():
    stream = EventStream()
    seen = []
    stream.subscribe(lambda ev: seen.append(ev.kind))

    stream.emit("run_started", "go")
    stream.emit("log", "hello")

    assert seen == ["run_started", "log"]


def test_unsubscribe():
    stream = EventStream()
    seen = []
    unsubscribe = stream.subscribe(lambda ev: seen.append(ev))
    unsubscribe()
    stream.emit("log", "ignored")
    assert seen == []


def test_failing_subscriber_is_isolated():
    stream = EventStream()
    seen = []

    def broken(ev):
        raise RuntimeError("subscriber bug")

    stream.subscribe(broken)
    stream.subscribe(lambda ev: seen.append(ev.message))

    stream.emit("log", "still delivered")
    assert seen == ["still delivered"]


def test_poll_and_drain():
    stream = EventStream()
    assert stream.poll() is None
    assert stream.empty()

    stream.emit("log", "a", payload=1)
    stream.emit("error", "b")

    first = stream.poll(timeout=0.1)
    assert first.kind == "log" and first.payload == 1
    assert [e.message for e in stream.drain()] == ["b"]
    assert stream.empty()


def test_bounded_queue_drops_oldest():
    stream = EventStream(maxsize=2)
    for i in range(3):
        stream.emit("log", str(i))
    assert [e.message for e in stream.drain()] == ["1", "2"]
