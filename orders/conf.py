"""
Orders Module Configuration

Defaults for the ``ORDERS`` settings dict. Projects override individual
keys in their settings module.
"""
from django.conf import settings as django_settings

DEFAULTS = {
    "ORDER_NUMBER_PREFIX": "ORD",
    "ORDER_NUMBER_MAX_RETRIES": 5,
    "EVENT_QUEUE_SIZE": 100,
    "EVENT_KEEPALIVE_SECONDS": 15,
    "DEFAULT_PAGE_SIZE": 20,
}


def get_setting(name):
    overrides = getattr(django_settings, 'ORDERS', {})
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
