"""Tests for event encoding and the event bus."""

from __future__ import annotations

import json
import threading

import pytest

from composectl._cancel import CancelToken
from composectl.errors import ComposeError, OverflowFault, SerializationError
from composectl.events import Event, EventBus, decode_event, encode_event
from composectl.models import ComposeProject

PROJECT = ComposeProject(name="app")


def _event(i: int) -> Event:
    return Event(action="start", id=f"c{i}", service="web", attributes={"seq": i})


def _take(subscription, n: int) -> list[str]:
    out: list[str] = []
    for payload in subscription:
        out.append(payload)
        if len(out) == n:
            break
    return out


class TestEncoding:
    def test_model_field_order(self):
        payload = encode_event(Event(time="t", action="die", id="abc", service="db"))
        assert payload == (
            '{"time":"t","type":"container","action":"die","id":"abc",'
            '"service":"db","attributes":{}}'
        )

    def test_mapping_sorted_keys(self):
        assert encode_event({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_round_trip(self):
        event = Event(action="start", service="web", attributes={"image": "nginx"})
        assert decode_event(encode_event(event)) == event

    def test_unserializable_attribute(self):
        with pytest.raises(SerializationError):
            encode_event(Event(action="start", attributes={"bad": object()}))

    def test_unserializable_mapping(self):
        with pytest.raises(SerializationError):
            encode_event({"when": {1, 2}})

    def test_nan_rejected(self):
        with pytest.raises(SerializationError):
            encode_event({"value": float("nan")})

    def test_model_nan_attribute_rejected(self):
        with pytest.raises(SerializationError):
            encode_event(Event(action="start", attributes={"value": float("nan")}))

    def test_model_infinity_attribute_rejected(self):
        with pytest.raises(SerializationError):
            encode_event(Event(action="start", attributes={"value": float("inf")}))

    def test_model_set_attribute_rejected(self):
        with pytest.raises(SerializationError):
            encode_event(Event(action="start", attributes={"when": {1, 2}}))

    def test_model_and_mapping_agree_on_nested_values(self):
        attributes = {"image": "nginx", "ports": [80, 443], "ok": True, "n": None}
        model = json.loads(encode_event(Event(action="start", attributes=attributes)))
        mapping = json.loads(encode_event({"attributes": attributes}))
        assert model["attributes"] == mapping["attributes"] == attributes

    def test_decode_garbage(self):
        with pytest.raises(SerializationError):
            decode_event("not json")

    def test_is_container_event(self):
        assert Event(action="start").is_container_event
        assert not Event(type="network", action="create").is_container_event


class TestEventBus:
    def test_delivers_in_order(self):
        bus = EventBus()
        cancel = CancelToken()
        sub = bus.subscribe(PROJECT, cancel)
        try:
            for i in range(5):
                bus.send(_event(i))
            received = [json.loads(p)["id"] for p in _take(sub, 5)]
            assert received == ["c0", "c1", "c2", "c3", "c4"]
        finally:
            cancel.cancel()
            bus.close()

    def test_fan_out_to_every_subscriber(self):
        bus = EventBus()
        cancel_a, cancel_b = CancelToken(), CancelToken()
        a = bus.subscribe(PROJECT, cancel_a)
        b = bus.subscribe(PROJECT, cancel_b)
        try:
            for i in range(3):
                bus.send(_event(i))
            assert _take(a, 3) == _take(b, 3)
        finally:
            bus.close()

    def test_decoded_events(self):
        bus = EventBus()
        sub = bus.subscribe(PROJECT, CancelToken())
        bus.send(_event(7))
        try:
            event = next(sub.events())
            assert event.id == "c7"
            assert event.attributes == {"seq": 7}
        finally:
            bus.close()

    def test_events_retained_until_first_subscriber(self):
        bus = EventBus()
        for i in range(3):
            bus.send(_event(i))
        sub = bus.subscribe(PROJECT, CancelToken())
        try:
            assert [json.loads(p)["id"] for p in _take(sub, 3)] == ["c0", "c1", "c2"]
        finally:
            bus.close()

    def test_cancel_ends_iteration(self):
        bus = EventBus()
        cancel = CancelToken()
        sub = bus.subscribe(PROJECT, cancel)

        out: list[str] = []
        thread = threading.Thread(target=lambda: out.extend(sub), daemon=True)
        thread.start()
        threading.Timer(0.05, cancel.cancel).start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert out == []
        assert sub.closed
        assert bus.subscriber_count == 0
        bus.close()

    def test_resubscribe_after_last_subscriber_leaves(self):
        bus = EventBus()
        first = CancelToken()
        bus.subscribe(PROJECT, first)
        first.cancel()

        bus.send(_event(1))
        sub = bus.subscribe(PROJECT, CancelToken())
        try:
            assert json.loads(_take(sub, 1)[0])["id"] == "c1"
        finally:
            bus.close()

    def test_overflow_delivers_capacity_then_faults(self):
        fatal: list[OverflowFault] = []
        bus = EventBus(queue_size=100, subscriber_queue_size=10, on_fatal=fatal.append)
        for i in range(15):
            bus.send(_event(i))
        sub = bus.subscribe(PROJECT, CancelToken())

        assert bus.wait_halted(timeout=5)
        assert sub.pending == 10

        received: list[str] = []
        with pytest.raises(OverflowFault) as exc_info:
            for payload in sub:
                received.append(payload)

        assert [json.loads(p)["id"] for p in received] == [f"c{i}" for i in range(10)]
        assert exc_info.value is bus.fault
        assert fatal == [bus.fault]
        assert exc_info.value.capacity == 10
        assert json.loads(exc_info.value.payload)["id"] == "c10"

    def test_overflow_releases_blocked_producers(self):
        bus = EventBus(queue_size=2, subscriber_queue_size=1, on_fatal=lambda fault: None)
        bus.send(_event(0))
        bus.send(_event(1))

        outcomes: list[object] = []
        lock = threading.Lock()

        def _produce(i: int) -> None:
            try:
                bus.send(_event(i))
                result: object = "sent"
            except OverflowFault as e:
                result = e
            with lock:
                outcomes.append(result)

        producers = [threading.Thread(target=_produce, args=(i,), daemon=True) for i in (2, 3, 4)]
        for t in producers:
            t.start()

        sub = bus.subscribe(PROJECT, CancelToken())
        assert bus.wait_halted(timeout=5)
        for t in producers:
            t.join(timeout=5)

        assert not any(t.is_alive() for t in producers)
        faults = [o for o in outcomes if isinstance(o, OverflowFault)]
        assert faults
        assert all(f is bus.fault for f in faults)
        with pytest.raises(OverflowFault):
            list(sub)

    def test_close_releases_blocked_producer(self):
        bus = EventBus(queue_size=1)
        bus.send(_event(0))

        errors: list[BaseException] = []

        def _produce() -> None:
            try:
                bus.send(_event(1))
            except ComposeError as e:
                errors.append(e)

        producer = threading.Thread(target=_produce, daemon=True)
        producer.start()
        threading.Timer(0.05, bus.close).start()
        producer.join(timeout=5)

        assert not producer.is_alive()
        assert len(errors) == 1
        assert "closed" in str(errors[0])

    def test_send_after_overflow_raises(self):
        bus = EventBus(subscriber_queue_size=1, on_fatal=lambda fault: None)
        bus.subscribe(PROJECT, CancelToken())
        bus.send(_event(0))
        bus.send(_event(1))
        assert bus.wait_halted(timeout=5)

        with pytest.raises(OverflowFault):
            bus.send(_event(2))

    def test_subscribe_after_overflow_gets_fault(self):
        bus = EventBus(subscriber_queue_size=1, on_fatal=lambda fault: None)
        bus.subscribe(PROJECT, CancelToken())
        bus.send(_event(0))
        bus.send(_event(1))
        assert bus.wait_halted(timeout=5)

        late = bus.subscribe(PROJECT, CancelToken())
        with pytest.raises(OverflowFault):
            list(late)

    def test_default_fatal_policy_logs_critical(self, caplog):
        import logging

        logging.getLogger("composectl").addHandler(caplog.handler)
        try:
            bus = EventBus(subscriber_queue_size=1)
            bus.subscribe(PROJECT, CancelToken())
            with caplog.at_level("CRITICAL", logger="composectl.events"):
                bus.send(_event(0))
                bus.send(_event(1))
                assert bus.wait_halted(timeout=5)
            assert "Event bus halted" in caplog.text
        finally:
            logging.getLogger("composectl").removeHandler(caplog.handler)

    def test_send_rejects_unserializable_without_enqueueing(self):
        bus = EventBus()
        sub = bus.subscribe(PROJECT, CancelToken())
        try:
            with pytest.raises(SerializationError):
                bus.send({"bad": object()})
            bus.send(_event(1))
            assert json.loads(_take(sub, 1)[0])["id"] == "c1"
        finally:
            bus.close()

    def test_close(self):
        bus = EventBus()
        sub = bus.subscribe(PROJECT, CancelToken())
        bus.close()

        assert list(sub) == []
        with pytest.raises(ComposeError, match="closed"):
            bus.send(_event(0))
        assert list(bus.subscribe(PROJECT, CancelToken())) == []
