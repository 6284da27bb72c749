"""
Order Number Generator

Numbers look like ``ORD-20240101-0001``: the creation day (project
TIME_ZONE) followed by a 4-digit sequence that restarts every day.

The sequence comes from an OrderSequence row per day, incremented with an
``F()`` update. The update holds the row lock until the surrounding
transaction ends, so callers must run inside ``transaction.atomic()``
together with the order insert.
"""

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .conf import get_setting
from .models import Order, OrderSequence

logger = logging.getLogger(__name__)


def format_order_number(day, sequence, prefix=None):
    prefix = prefix or get_setting('ORDER_NUMBER_PREFIX')
    return f"{prefix}-{day:%Y%m%d}-{sequence:04d}"


def _existing_count(day):
    prefix = format_order_number(day, 0).rsplit('-', 1)[0]
    return Order.objects.filter(order_number__startswith=f"{prefix}-").count()


def next_order_number(day=None):
    """Reserve and return the next order number for ``day`` (default: today)."""
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError('next_order_number() must run inside transaction.atomic()')

    day = day or timezone.localdate()
    # A day that already has orders (e.g. imported) continues after them.
    sequence, _ = OrderSequence.objects.get_or_create(
        day=day, defaults={'last_value': lambda: _existing_count(day)},
    )
    OrderSequence.objects.filter(pk=sequence.pk).update(last_value=F('last_value') + 1)
    sequence.refresh_from_db(fields=['last_value'])

    number = format_order_number(day, sequence.last_value)
    logger.debug("Reserved order number %s", number)
    return number
