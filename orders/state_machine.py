"""
Order State Machine

Order statuses and the table of legal transitions between them. Every
status mutation in the order service is checked here first.
"""

from django.core.exceptions import ImproperlyConfigured
from django.db import models
from django.utils.translation import gettext_lazy as _

from .exceptions import InvalidStatusTransition


class OrderStatus(models.TextChoices):
    PENDING = 'PENDING', _('Pending')
    CONFIRMED = 'CONFIRMED', _('Confirmed')
    PREPARING = 'PREPARING', _('Preparing')
    READY = 'READY', _('Ready')
    COMPLETED = 'COMPLETED', _('Completed')
    CANCELLED = 'CANCELLED', _('Cancelled')


INITIAL_STATUS = OrderStatus.PENDING

TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Every status needs a row, terminal ones included.
_missing = set(OrderStatus) - set(TRANSITIONS)
if _missing:
    raise ImproperlyConfigured(f"No transitions declared for {sorted(_missing)}")


def allowed(current):
    """Return the set of statuses reachable from ``current`` in one step."""
    return TRANSITIONS[OrderStatus(current)]


def is_terminal(status):
    return not allowed(status)


def can_transition(current, requested):
    return OrderStatus(requested) in allowed(current)


def validate_transition(current, requested):
    """
    Raise InvalidStatusTransition unless ``current -> requested`` is in the table.

    Unknown status values are rejected the same way.
    """
    try:
        ok = can_transition(current, requested)
    except ValueError:
        ok = False
    if not ok:
        raise InvalidStatusTransition(current, requested)
