"""
Stock Ledger

Reads and moves per-product available quantity. Every method expects to run
inside the caller's ``transaction.atomic()`` block.
"""

import logging
from typing import Dict, Iterable

from django.db.models import F
from django.utils import timezone

from catalog.models import Product

from ..exceptions import InsufficientStock

logger = logging.getLogger(__name__)


class StockLedger:
    """Stock reads/writes against catalog.Product."""

    def lock_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """
        Fetch products by id, row-locked until the transaction ends.

        Rows are locked in primary-key order so concurrent orders touching the
        same products cannot deadlock. Missing ids are simply absent from the
        result.
        """
        ids = sorted(set(product_ids))
        products = (
            Product.objects.select_for_update()
            .filter(pk__in=ids)
            .order_by('pk')
        )
        return {product.pk: product for product in products}

    def available(self, product_id: int) -> int:
        return Product.objects.values_list('stock', flat=True).get(pk=product_id)

    def decrement(self, product: Product, quantity: int) -> None:
        """
        Take ``quantity`` units of ``product``.

        The update only matches while enough stock remains, so stock can never
        go negative even if the row was not locked beforehand.
        """
        updated = Product.objects.filter(pk=product.pk, stock__gte=quantity).update(
            stock=F('stock') - quantity,
            updated_at=timezone.now(),
        )
        if not updated:
            available = self.available(product.pk)
            raise InsufficientStock(product.pk, product.name, quantity, available)

    def increment(self, product_id: int, quantity: int) -> None:
        Product.objects.filter(pk=product_id).update(
            stock=F('stock') + quantity,
            updated_at=timezone.now(),
        )
