"""
JSON shapes for orders returned by the API.
"""

from .events import customer_display_name


def serialize_item(item):
    return {
        'id': item.pk,
        'product_id': item.product_id,
        'product_name': item.product_name,
        'quantity': item.quantity,
        'unit_price': str(item.unit_price),
        'subtotal': str(item.subtotal),
    }


def serialize_order(order, include_items=True):
    data = {
        'id': order.pk,
        'order_number': order.order_number,
        'status': str(order.status),
        'total_amount': str(order.total_amount),
        'notes': order.notes,
        'customer_id': order.customer_id,
        'customer_name': customer_display_name(order),
        'created_at': order.created_at.isoformat(),
        'updated_at': order.updated_at.isoformat(),
    }
    if include_items:
        data['items'] = [serialize_item(item) for item in order.items.all()]
    return data
