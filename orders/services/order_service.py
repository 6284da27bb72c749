"""
Order Service

Handles business logic for order operations: stock reservation on create,
status transitions, and stock restoration on cancel. Every mutation runs in
one transaction and is announced on the event bus only after it commits.
"""

import functools
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from catalog.models import Customer

from .. import signals
from ..conf import get_setting
from ..events import EventType, OrderEvent
from ..exceptions import (
    AlreadyCancelled,
    CannotCancelCompleted,
    InsufficientStock,
    InternalError,
    OrderClosed,
    OrderError,
    OrderNotFound,
    OrderValidationError,
    ProductInactive,
    ProductNotFound,
)
from ..models import Order, OrderItem
from ..numbering import next_order_number
from ..state_machine import INITIAL_STATUS, OrderStatus, validate_transition
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)

_SIGNALS = {
    EventType.ORDER_CREATED: signals.order_created,
    EventType.ORDER_UPDATED: signals.order_updated,
    EventType.ORDER_CANCELLED: signals.order_cancelled,
}


def _storage_errors(method):
    """Report unexpected database failures as InternalError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except OrderError:
            raise
        except DatabaseError as exc:
            logger.exception("Storage failure in %s", method.__name__)
            raise InternalError() from exc

    return wrapper


def _is_number_conflict(exc):
    """True when ``exc`` comes from the unique order_number constraint."""
    return 'order_number' in str(exc)


class OrderService:
    """Service for managing orders."""

    def __init__(self, event_bus, stock_ledger: Optional[StockLedger] = None):
        self.event_bus = event_bus
        self.stock = stock_ledger or StockLedger()

    # ---- Queries ----

    def get_order(self, order_id: int) -> Order:
        try:
            return (
                Order.objects.select_related('customer')
                .prefetch_related('items')
                .get(pk=order_id)
            )
        except Order.DoesNotExist:
            raise OrderNotFound(order_id)

    def list_orders(self, status: Optional[str] = None, limit: Optional[int] = None,
                    offset: int = 0):
        """Return ``(orders, total_count)``, newest first."""
        qs = Order.objects.select_related('customer').prefetch_related('items')
        if status:
            qs = qs.filter(status=status)
        limit = limit or get_setting('DEFAULT_PAGE_SIZE')
        return list(qs[offset:offset + limit]), qs.count()

    def get_order_stats(self, date=None) -> Dict[str, Any]:
        """Get order statistics for a date."""
        if date is None:
            date = timezone.localdate()

        orders = Order.objects.filter(created_at__date=date)
        by_status = {
            row['status']: row['count']
            for row in orders.values('status').annotate(count=Count('id'))
        }
        revenue = orders.exclude(status=OrderStatus.CANCELLED).aggregate(
            revenue=Sum('total_amount'),
        )['revenue'] or Decimal('0')
        # SQLite sums decimals as floats.
        revenue = revenue.quantize(Decimal('0.01'))

        return {
            'date': date.isoformat(),
            'total_orders': sum(by_status.values()),
            'by_status': {status.value: by_status.get(status.value, 0) for status in OrderStatus},
            'revenue': str(revenue),
        }

    # ---- Create ----

    @_storage_errors
    def create_order(
        self,
        items: List[Dict],
        customer_id: Optional[int] = None,
        notes: str = '',
    ) -> Order:
        """
        Create an order and reserve stock for all of its items.

        Args:
            items: List of dicts with product_id and quantity (at least one)
            customer_id: Customer ID (optional, walk-in orders have none)
            notes: Order notes

        Returns:
            Created Order instance

        Raises ProductNotFound, ProductInactive or InsufficientStock before
        anything is written. Either the order, its items and every stock
        decrement are committed together, or nothing is.
        """
        lines = self._normalize_items(items)

        max_retries = get_setting('ORDER_NUMBER_MAX_RETRIES')
        for attempt in range(1, max_retries + 1):
            try:
                order = self._create_order_once(lines, customer_id, notes)
            except IntegrityError as exc:
                if not _is_number_conflict(exc) or attempt == max_retries:
                    raise
                logger.warning(
                    "Order insert conflicted (attempt %s/%s), retrying",
                    attempt, max_retries,
                )
                continue
            break

        logger.info(
            "Order %s created: %s item(s), total %s",
            order.order_number, len(lines), order.total_amount,
        )
        return self.get_order(order.pk)

    @staticmethod
    def _normalize_items(items):
        if not items:
            raise OrderValidationError({'items': ['At least one item is required.']})
        lines = []
        for index, item in enumerate(items):
            product_id = item.get('product_id')
            if not isinstance(product_id, int) or isinstance(product_id, bool):
                raise OrderValidationError(
                    {f'items[{index}].product_id': ['Product ID must be an integer.']},
                )
            quantity = item.get('quantity')
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                raise OrderValidationError(
                    {f'items[{index}].quantity': ['Quantity must be a positive integer.']},
                )
            lines.append((product_id, quantity))
        return lines

    def _create_order_once(self, lines, customer_id, notes):
        with transaction.atomic():
            if customer_id is not None:
                self._lock_customer(customer_id)
            products = self.stock.lock_products(product_id for product_id, _ in lines)
            self._check_products(lines, products)
            self._check_stock(lines, products)

            order = Order.objects.create(
                order_number=next_order_number(),
                customer_id=customer_id,
                notes=notes or '',
                status=INITIAL_STATUS,
            )

            total = Decimal('0.00')
            for product_id, quantity in lines:
                product = products[product_id]
                item = OrderItem.objects.create(
                    order=order,
                    product=product,
                    product_name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                )
                total += item.subtotal
                self.stock.decrement(product, quantity)

            order.total_amount = total
            order.save(update_fields=['total_amount', 'updated_at'])

            self._announce(EventType.ORDER_CREATED, order)
        return order

    @staticmethod
    def _lock_customer(customer_id):
        # Held until commit so the customer cannot vanish under the insert.
        locked = Customer.objects.select_for_update().filter(pk=customer_id)
        if not list(locked.values_list('pk', flat=True)):
            raise OrderValidationError(
                {'customer_id': [f'Customer {customer_id} does not exist.']},
            )

    @staticmethod
    def _check_products(lines, products):
        for product_id, _ in lines:
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if not product.is_active:
                raise ProductInactive(product_id, product.name)

    @staticmethod
    def _check_stock(lines, products):
        # Lines for the same product draw on the same stock.
        requested = OrderedDict()
        for product_id, quantity in lines:
            requested[product_id] = requested.get(product_id, 0) + quantity

        for product_id, quantity in requested.items():
            product = products[product_id]
            if product.stock < quantity:
                logger.warning(
                    "Rejected order: %s requested %s, %s available",
                    product.sku, quantity, product.stock,
                )
                raise InsufficientStock(product.pk, product.name, quantity, product.stock)

    # ---- Update / cancel ----

    @_storage_errors
    def update_order(
        self,
        order_id: int,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Change an order's status and/or notes.

        Moving to CANCELLED goes through the same stock restoration as
        cancel_order().
        """
        if status is None and notes is None:
            raise OrderValidationError({'__all__': ['Provide status and/or notes.']})

        with transaction.atomic():
            order = self._lock_order(order_id)
            previous_status = order.status

            if status is not None:
                validate_transition(order.status, status)
                status = OrderStatus(status)
            elif order.is_terminal:
                raise OrderClosed(order.order_number, order.status)

            if notes is not None:
                order.notes = notes

            if status == OrderStatus.CANCELLED:
                self._cancel_locked(order)
            else:
                if status is not None:
                    order.status = status
                order.save(update_fields=['status', 'notes', 'updated_at'])
                self._announce(EventType.ORDER_UPDATED, order, previous_status=previous_status)

        if status is not None and status != previous_status:
            logger.info("Order %s: %s -> %s", order.order_number, previous_status, status)
        return self.get_order(order.pk)

    @_storage_errors
    def cancel_order(self, order_id: int) -> Order:
        """Cancel an order and put every reserved unit back in stock."""
        with transaction.atomic():
            order = self._lock_order(order_id)
            if order.status == OrderStatus.CANCELLED:
                raise AlreadyCancelled(order_id=order.pk)
            if order.status == OrderStatus.COMPLETED:
                raise CannotCancelCompleted(order_id=order.pk)
            validate_transition(order.status, OrderStatus.CANCELLED)
            self._cancel_locked(order)
        return self.get_order(order.pk)

    def _lock_order(self, order_id):
        try:
            return Order.objects.select_for_update().get(pk=order_id)
        except Order.DoesNotExist:
            raise OrderNotFound(order_id)

    def _cancel_locked(self, order):
        order.status = OrderStatus.CANCELLED
        order.save(update_fields=['status', 'notes', 'updated_at'])

        restored = 0
        for item in order.items.order_by('product_id', 'id'):
            self.stock.increment(item.product_id, item.quantity)
            restored += item.quantity

        logger.info(
            "Order %s cancelled, %s unit(s) returned to stock",
            order.order_number, restored,
        )
        self._announce(EventType.ORDER_CANCELLED, order)

    # ---- Events ----

    def _announce(self, event_type, order, **extra):
        """Queue the bus event and Django signal for after commit."""
        event = OrderEvent.from_order(event_type, order)
        signal = _SIGNALS[event_type]

        def deliver():
            self.event_bus.publish(event)
            signals.send_robust(signal, sender=Order, order=order, event=event, **extra)

        transaction.on_commit(deliver)
