"""
Tests for order number generation.
"""

import pytest
from datetime import date
from django.db import transaction
from django.test import override_settings

from orders.models import Order, OrderSequence
from orders.numbering import format_order_number, next_order_number


class TestFormatOrderNumber:

    def test_format(self):
        assert format_order_number(date(2024, 1, 1), 1) == 'ORD-20240101-0001'

    def test_zero_padded_to_four_digits(self):
        assert format_order_number(date(2024, 12, 31), 42) == 'ORD-20241231-0042'

    @override_settings(ORDERS={'ORDER_NUMBER_PREFIX': 'POS'})
    def test_prefix_from_settings(self):
        assert format_order_number(date(2024, 1, 1), 7) == 'POS-20240101-0007'


@pytest.mark.django_db
class TestNextOrderNumber:

    @pytest.mark.django_db(transaction=True)
    def test_requires_transaction(self):
        with pytest.raises(RuntimeError):
            next_order_number(date(2024, 1, 1))

    def test_sequence_starts_at_one(self):
        with transaction.atomic():
            assert next_order_number(date(2024, 1, 1)) == 'ORD-20240101-0001'

    def test_same_day_increments(self):
        with transaction.atomic():
            first = next_order_number(date(2024, 1, 1))
        with transaction.atomic():
            second = next_order_number(date(2024, 1, 1))

        assert (first, second) == ('ORD-20240101-0001', 'ORD-20240101-0002')
        assert OrderSequence.objects.get(day=date(2024, 1, 1)).last_value == 2

    def test_sequence_resets_each_day(self):
        with transaction.atomic():
            next_order_number(date(2024, 1, 1))
            next_order_number(date(2024, 1, 1))
            assert next_order_number(date(2024, 1, 2)) == 'ORD-20240102-0001'

    def test_rolled_back_number_is_reused(self):
        with pytest.raises(ZeroDivisionError):
            with transaction.atomic():
                next_order_number(date(2024, 1, 1))
                1 / 0

        with transaction.atomic():
            assert next_order_number(date(2024, 1, 1)) == 'ORD-20240101-0001'

    def test_continues_after_existing_orders(self):
        Order.objects.create(order_number='ORD-20240101-0001')
        Order.objects.create(order_number='ORD-20240101-0002')

        with transaction.atomic():
            assert next_order_number(date(2024, 1, 1)) == 'ORD-20240101-0003'
