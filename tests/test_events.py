"""
Tests for the order event bus.
"""

import json
import threading

import pytest
from decimal import Decimal
from django.utils import timezone

from orders.events import EventType, OrderEvent, OrderEventBus

from conftest import drain


def make_event(number=1, event_type=EventType.ORDER_CREATED, customer_name=None):
    now = timezone.now()
    return OrderEvent(
        type=event_type,
        order_id=number,
        order_number=f'ORD-20240101-{number:04d}',
        status='PENDING',
        total_amount=Decimal('9.98'),
        customer_name=customer_name,
        created_at=now,
        updated_at=now,
    )


class TestOrderEvent:

    def test_to_dict(self):
        event = make_event(customer_name='John Doe')
        data = event.to_dict()

        assert data['type'] == 'order_created'
        assert data['order_number'] == 'ORD-20240101-0001'
        assert data['total_amount'] == '9.98'
        assert data['customer_name'] == 'John Doe'
        assert data['created_at'] == event.created_at.isoformat()

    def test_walk_in_has_no_customer_name(self):
        assert 'customer_name' not in make_event().to_dict()

    def test_to_json_round_trips(self):
        event = make_event(3)
        assert json.loads(event.to_json()) == event.to_dict()


class TestOrderEventBus:

    def test_publish_without_subscribers_is_dropped(self, event_bus):
        assert event_bus.publish(make_event()) == 0

        # A later subscriber does not get earlier events.
        with event_bus.subscribe() as sub:
            assert drain(sub) == []

    def test_every_subscriber_receives_event(self, event_bus):
        first = event_bus.subscribe()
        second = event_bus.subscribe()
        event = make_event()

        assert event_bus.publish(event) == 2
        assert drain(first) == [event]
        assert drain(second) == [event]

    def test_events_arrive_in_publish_order(self, event_bus, subscription):
        events = [make_event(n) for n in range(1, 6)]
        for event in events:
            event_bus.publish(event)

        assert drain(subscription) == events

    def test_unsubscribe_removes_subscriber(self, event_bus):
        sub = event_bus.subscribe()
        assert event_bus.subscriber_count == 1

        sub.close()

        assert event_bus.subscriber_count == 0
        assert sub.closed
        assert event_bus.publish(make_event()) == 0

    def test_unsubscribe_twice_is_harmless(self, event_bus):
        sub = event_bus.subscribe()
        sub.close()
        sub.close()
        assert len(event_bus) == 0

    def test_full_subscriber_does_not_block_publisher(self):
        bus = OrderEventBus(queue_size=2)
        slow = bus.subscribe()
        fast = bus.subscribe()

        for n in range(1, 5):
            bus.publish(make_event(n))
            drain(fast)

        assert slow.dropped == 2
        assert [e.order_id for e in drain(slow)] == [1, 2]
        assert fast.dropped == 0
        bus.close()

    def test_listen_yields_none_on_keepalive(self, subscription):
        stream = subscription.listen(keepalive=0.01)
        assert next(stream) is None

    def test_listen_ends_when_closed(self, event_bus, subscription):
        event = make_event()
        event_bus.publish(event)
        stream = subscription.listen(keepalive=0.01)

        assert next(stream) == event
        subscription.close()
        with pytest.raises(StopIteration):
            next(stream)

    def test_close_wakes_blocked_listener(self, event_bus):
        sub = event_bus.subscribe()
        received = []

        def consume():
            for event in sub.listen():
                received.append(event)

        consumer = threading.Thread(target=consume)
        consumer.start()
        event_bus.publish(make_event())
        sub.close()
        consumer.join(timeout=2)

        assert not consumer.is_alive()
        assert [e.order_id for e in received] == [1]

    def test_subscribe_while_publishing(self, event_bus):
        errors = []

        def churn():
            try:
                for _ in range(200):
                    event_bus.subscribe().close()
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        worker = threading.Thread(target=churn)
        worker.start()
        for n in range(200):
            event_bus.publish(make_event(n))
        worker.join(timeout=5)

        assert errors == []
        assert event_bus.subscriber_count == 0
