from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'orders'
    verbose_name = 'Orders'

    def ready(self):
        from .conf import get_setting
        from .events import OrderEventBus
        from . import signals  # noqa

        # One bus per process, shared by the service and the event stream.
        self.event_bus = OrderEventBus(queue_size=get_setting('EVENT_QUEUE_SIZE'))
