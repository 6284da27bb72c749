"""
Catalog Models

Products, categories and customers consumed by the orders app.
Plain data holders: stock is only ever moved by the orders stock ledger.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import TimeStampedModel


class Category(TimeStampedModel):
    name = models.CharField(max_length=100, unique=True, verbose_name=_('Name'))
    description = models.TextField(blank=True)

    class Meta(TimeStampedModel.Meta):
        db_table = 'catalog_category'
        verbose_name = _('Category')
        verbose_name_plural = _('Categories')
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(TimeStampedModel):
    """Sellable product with an available stock counter."""

    name = models.CharField(max_length=255, verbose_name=_('Name'))
    sku = models.CharField(max_length=64, unique=True, verbose_name=_('SKU'))
    description = models.TextField(blank=True)
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='products',
        verbose_name=_('Category'),
    )
    price = models.DecimalField(
        max_digits=10, decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        verbose_name=_('Price'),
    )
    stock = models.PositiveIntegerField(default=0, verbose_name=_('Stock'))
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    class Meta(TimeStampedModel.Meta):
        db_table = 'catalog_product'
        verbose_name = _('Product')
        verbose_name_plural = _('Products')
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name='catalog_product_stock_non_negative',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"


class Customer(TimeStampedModel):
    first_name = models.CharField(max_length=100, verbose_name=_('First Name'))
    last_name = models.CharField(max_length=100, verbose_name=_('Last Name'))
    email = models.EmailField(unique=True, verbose_name=_('Email'))
    phone = models.CharField(max_length=32, blank=True, verbose_name=_('Phone'))

    class Meta(TimeStampedModel.Meta):
        db_table = 'catalog_customer'
        verbose_name = _('Customer')
        verbose_name_plural = _('Customers')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        return f"{self.first_name} {self.last_name}".strip()
