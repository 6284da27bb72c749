"""
Order Event Bus

In-process broadcast of order lifecycle events to live subscribers
(kitchen displays, dashboards) behind the SSE endpoint.

- Each subscriber owns a bounded queue; publishing never blocks. When a
  subscriber's queue is full the event is dropped for that subscriber only.
- Delivery is at-most-once: nothing is stored for subscribers that are not
  connected when an event is published.
- The registry may change while a publish is running; publish works on a
  snapshot of it.
"""

import json
import logging
import queue
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ObjectDoesNotExist
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

logger = logging.getLogger(__name__)


class EventType:
    ORDER_CREATED = 'order_created'
    ORDER_UPDATED = 'order_updated'
    ORDER_CANCELLED = 'order_cancelled'

    ALL = (ORDER_CREATED, ORDER_UPDATED, ORDER_CANCELLED)


def customer_display_name(order) -> Optional[str]:
    """Best-effort customer name; a missing customer never fails the caller."""
    if not order.customer_id:
        return None
    try:
        return order.customer.display_name
    except ObjectDoesNotExist:
        return None


@dataclass(frozen=True)
class OrderEvent:
    type: str
    order_id: int
    order_number: str
    status: str
    total_amount: Decimal
    created_at: datetime
    updated_at: datetime
    customer_name: Optional[str] = None

    @classmethod
    def from_order(cls, event_type, order):
        return cls(
            type=event_type,
            order_id=order.pk,
            order_number=order.order_number,
            status=str(order.status),
            total_amount=order.total_amount,
            customer_name=customer_display_name(order),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    def to_dict(self):
        data = {
            'type': self.type,
            'order_id': self.order_id,
            'order_number': self.order_number,
            'status': self.status,
            'total_amount': str(self.total_amount),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }
        if self.customer_name:
            data['customer_name'] = self.customer_name
        return data

    def to_json(self):
        return json.dumps(self.to_dict(), cls=DjangoJSONEncoder)


_CLOSED = object()


class Subscription:
    """A subscriber's handle: a bounded inbox plus its registry identity."""

    def __init__(self, bus, maxsize):
        self.id = uuid.uuid4().hex
        self.dropped = 0
        self._bus = bus
        self._queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    def __repr__(self):
        return f"<Subscription {self.id}>"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def closed(self):
        return self._closed.is_set()

    def deliver(self, event):
        """Queue ``event`` without blocking. Returns False if it was dropped."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.warning(
                "Subscriber %s is not keeping up; dropped %s event for order %s",
                self.id, event.type, event.order_number,
            )
            return False
        return True

    def get(self, timeout=None):
        """
        Wait for the next event.

        Returns None when ``timeout`` elapses with nothing queued, or at once
        when the subscription has been closed.
        """
        if self.closed and self._queue.empty():
            return None
        try:
            event = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if event is _CLOSED:
            return None
        return event

    def listen(self, keepalive=None):
        """
        Yield events as they arrive, or None after ``keepalive`` idle seconds.

        Ends once the subscription is closed and its queued events are consumed.
        """
        while True:
            event = self.get(timeout=keepalive)
            if event is None and self.closed:
                return
            yield event

    def close(self):
        self._bus.unsubscribe(self)

    def _shutdown(self):
        self._closed.set()
        try:
            self._queue.put_nowait(_CLOSED)
        except queue.Full:
            pass


class OrderEventBus:
    """Subscriber registry plus non-blocking fan-out."""

    def __init__(self, queue_size=100):
        self.queue_size = queue_size
        self._subscribers = {}
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()

    def __len__(self):
        return self.subscriber_count

    @property
    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def subscribe(self):
        subscription = Subscription(self, maxsize=self.queue_size)
        with self._lock:
            self._subscribers[subscription.id] = subscription
        logger.debug("Subscriber %s connected", subscription.id)
        return subscription

    def unsubscribe(self, subscription):
        with self._lock:
            removed = self._subscribers.pop(subscription.id, None)
        subscription._shutdown()
        if removed is not None:
            logger.debug("Subscriber %s disconnected", subscription.id)

    def publish(self, event):
        """Hand ``event`` to every current subscriber. Returns the delivery count."""
        # One publish at a time so every subscriber sees the same order.
        with self._publish_lock:
            with self._lock:
                subscribers = list(self._subscribers.values())
            if not subscribers:
                logger.debug("No subscribers for %s %s", event.type, event.order_number)
                return 0
            return sum(1 for subscription in subscribers if subscription.deliver(event))

    def publish_on_commit(self, event, using=None):
        """Publish once the current transaction commits; never on rollback."""
        transaction.on_commit(lambda: self.publish(event), using=using)

    def close(self):
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            self.unsubscribe(subscription)
