"""
Pytest fixtures for Orders module tests.
"""

import json

import pytest
from decimal import Decimal
from django.apps import apps

from catalog.models import Category, Customer, Product
from orders.events import OrderEventBus
from orders.services import OrderService


@pytest.fixture
def category(db):
    return Category.objects.create(name='Food')


@pytest.fixture
def product(db, category):
    """Product with stock=10, price=4.99."""
    return Product.objects.create(
        name='Burger',
        sku='BRG-001',
        category=category,
        price=Decimal('4.99'),
        stock=10,
    )


@pytest.fixture
def second_product(db, category):
    return Product.objects.create(
        name='Fries',
        sku='FRS-001',
        category=category,
        price=Decimal('2.50'),
        stock=20,
    )


@pytest.fixture
def last_unit_product(db, category):
    """Product with a single unit left."""
    return Product.objects.create(
        name='Cheesecake',
        sku='CHK-001',
        category=category,
        price=Decimal('6.00'),
        stock=1,
    )


@pytest.fixture
def inactive_product(db, category):
    return Product.objects.create(
        name='Seasonal Soup',
        sku='SOUP-001',
        category=category,
        price=Decimal('3.75'),
        stock=50,
        is_active=False,
    )


@pytest.fixture
def customer(db):
    return Customer.objects.create(
        first_name='John',
        last_name='Doe',
        email='john@example.com',
    )


@pytest.fixture
def event_bus():
    bus = OrderEventBus(queue_size=10)
    yield bus
    bus.close()


@pytest.fixture
def subscription(event_bus):
    with event_bus.subscribe() as sub:
        yield sub


@pytest.fixture
def service(event_bus):
    return OrderService(event_bus)


@pytest.fixture
def app_event_bus():
    """The process-wide bus used by the views."""
    return apps.get_app_config('orders').event_bus


@pytest.fixture
def app_subscription(app_event_bus):
    with app_event_bus.subscribe() as sub:
        yield sub


@pytest.fixture
def order(db, service, product, django_capture_on_commit_callbacks):
    """A PENDING order for 2x Burger."""
    with django_capture_on_commit_callbacks(execute=True):
        return service.create_order(items=[{'product_id': product.pk, 'quantity': 2}])


@pytest.fixture
def post_json(client):
    def _post(url, data=None):
        return client.post(url, json.dumps(data or {}), content_type='application/json')
    return _post


@pytest.fixture
def patch_json(client):
    def _patch(url, data):
        return client.patch(url, json.dumps(data), content_type='application/json')
    return _patch


def drain(subscription):
    """Collect everything currently queued for ``subscription``."""
    events = []
    while True:
        event = subscription.get(timeout=0)
        if event is None:
            return events
        events.append(event)
