"""
Orders Module Signals

Sent after an order mutation commits, next to the event bus publication,
for in-process integrations.
"""

import logging
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Signals this module emits
order_created = Signal()  # Provides: order, event
order_updated = Signal()  # Provides: order, event, previous_status
order_cancelled = Signal()  # Provides: order, event


def send_robust(signal, sender, **kwargs):
    """Send ``signal``; a failing receiver is logged, never raised to the caller."""
    for receiver, response in signal.send_robust(sender=sender, **kwargs):
        if isinstance(response, Exception):
            logger.error(
                "Receiver %r failed for %s", receiver, kwargs.get('event'),
                exc_info=response,
            )
