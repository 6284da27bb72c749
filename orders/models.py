"""
Orders Module Models

Order tickets for the point of sale.
Features:
- Orders with line items priced from the catalog at creation time
- Date-scoped sequential order numbers (ORD-YYYYMMDD-NNNN)
- Finite status lifecycle (see state_machine)
- Items are immutable once the order exists
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel

from .state_machine import OrderStatus, INITIAL_STATUS, is_terminal


# =============================================================================
# Orders
# =============================================================================

class Order(TimeStampedModel):
    """Customer or walk-in order."""

    # Identification
    order_number = models.CharField(
        max_length=50, unique=True, verbose_name=_('Order Number'),
    )

    # Links
    customer = models.ForeignKey(
        'catalog.Customer',
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='orders',
        verbose_name=_('Customer'),
    )

    status = models.CharField(
        max_length=20, choices=OrderStatus.choices,
        default=INITIAL_STATUS, verbose_name=_('Status'),
    )

    notes = models.TextField(blank=True, default='')

    total_amount = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=Decimal('0.00'), verbose_name=_('Total Amount'),
    )

    class Meta(TimeStampedModel.Meta):
        db_table = 'orders_order'
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status'], name='orders_order_status_idx'),
            models.Index(fields=['created_at'], name='orders_order_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.order_number}"

    # ---- Properties ----

    @property
    def is_terminal(self):
        return is_terminal(self.status)

    @property
    def item_count(self):
        return self.items.count()

    # ---- Financial ----

    def calculate_total(self):
        return sum((item.subtotal for item in self.items.all()), Decimal('0.00'))


# =============================================================================
# Order Items
# =============================================================================

class OrderItem(TimeStampedModel):
    """One line of an order. Written once, together with its order."""

    order = models.ForeignKey(
        Order, on_delete=models.CASCADE,
        related_name='items', verbose_name=_('Order'),
    )
    product = models.ForeignKey(
        'catalog.Product', on_delete=models.PROTECT,
        related_name='order_items', verbose_name=_('Product'),
    )

    # Snapshot
    product_name = models.CharField(max_length=255, verbose_name=_('Product Name'))
    unit_price = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=Decimal('0.00'), verbose_name=_('Unit Price'),
    )

    quantity = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)],
        verbose_name=_('Quantity'),
    )
    subtotal = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=Decimal('0.00'), verbose_name=_('Subtotal'),
    )

    class Meta(TimeStampedModel.Meta):
        db_table = 'orders_order_item'
        verbose_name = _('Order Item')
        verbose_name_plural = _('Order Items')
        ordering = ['id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name='orders_order_item_quantity_positive',
            ),
        ]

    def __str__(self):
        return f"{self.quantity}x {self.product_name}"

    def save(self, *args, **kwargs):
        self.subtotal = self.unit_price * self.quantity
        super().save(*args, **kwargs)


# =============================================================================
# Order Number Sequence
# =============================================================================

class OrderSequence(models.Model):
    """Per-day counter behind order numbers."""

    day = models.DateField(unique=True, verbose_name=_('Day'))
    last_value = models.PositiveIntegerField(default=0, verbose_name=_('Last Value'))

    class Meta:
        db_table = 'orders_order_sequence'
        verbose_name = _('Order Sequence')
        verbose_name_plural = _('Order Sequences')

    def __str__(self):
        return f"{self.day:%Y%m%d} -> {self.last_value:04d}"
