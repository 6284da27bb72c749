"""
Orders Module Errors

Every failure the order core reports to callers. Each error carries a
stable ``code`` and the HTTP status the JSON API answers with.
"""


class OrderError(Exception):
    code = 'OrderError'
    status_code = 400
    default_message = 'Order operation failed'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.code, 'message': self.message, **self.details}


class OrderValidationError(OrderError):
    code = 'ValidationError'
    status_code = 422
    default_message = 'Invalid order data'

    def __init__(self, errors, message=None):
        super().__init__(message, errors=errors)


class ProductNotFound(OrderError):
    code = 'ProductNotFound'

    def __init__(self, product_id):
        super().__init__(
            f"Product {product_id} not found",
            product_id=product_id,
        )


class ProductInactive(OrderError):
    code = 'ProductInactive'

    def __init__(self, product_id, product_name=''):
        super().__init__(
            f"Product {product_name or product_id} is not active",
            product_id=product_id,
        )


class InsufficientStock(OrderError):
    code = 'InsufficientStock'

    def __init__(self, product_id, product_name, requested, available):
        super().__init__(
            f"Insufficient stock for product {product_name}. Available: {available}",
            product_id=product_id,
            requested=requested,
            available=available,
        )


class InvalidStatusTransition(OrderError):
    code = 'InvalidStatusTransition'

    def __init__(self, current, requested):
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            current=str(current),
            requested=str(requested),
        )


class AlreadyCancelled(OrderError):
    code = 'AlreadyCancelled'
    default_message = 'Order is already cancelled'


class CannotCancelCompleted(OrderError):
    code = 'CannotCancelCompleted'
    default_message = 'Cannot cancel completed order'


class OrderClosed(OrderError):
    code = 'OrderClosed'

    def __init__(self, order_number, status):
        super().__init__(
            f"Order {order_number} is {status} and can no longer be changed",
            order_number=order_number,
            status=str(status),
        )


class OrderNotFound(OrderError):
    code = 'OrderNotFound'
    status_code = 404

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class InternalError(OrderError):
    code = 'InternalError'
    status_code = 500
    default_message = 'Internal server error'
