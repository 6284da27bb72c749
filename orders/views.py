"""
Orders Module Views

JSON API for orders and the server-sent event stream for live displays.
"""

import functools
import json
import logging

from django.apps import apps
from django.http import JsonResponse, StreamingHttpResponse
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from .conf import get_setting
from .exceptions import OrderError, OrderValidationError
from .forms import OrderCreateForm, OrderUpdateForm, validate
from .serializers import serialize_order
from .services import OrderService
from .state_machine import OrderStatus

logger = logging.getLogger(__name__)


def _event_bus():
    return apps.get_app_config('orders').event_bus


def _service():
    return OrderService(_event_bus())


def _json_body(request):
    try:
        data = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise OrderValidationError({'__all__': ['Invalid JSON']})
    if not isinstance(data, dict):
        raise OrderValidationError({'__all__': ['Expected a JSON object']})
    return data


def _int_param(request, name, default, minimum=0):
    raw = request.GET.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        value = minimum - 1
    if value < minimum:
        raise OrderValidationError({name: [f'Must be an integer >= {minimum}']})
    return value


def order_errors(view):
    """Turn OrderError into a JSON error response."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except OrderError as exc:
            if exc.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, exc)
            return JsonResponse(exc.to_dict(), status=exc.status_code)

    return wrapper


# =============================================================================
# Orders
# =============================================================================

@csrf_exempt
@require_http_methods(['GET', 'POST'])
@order_errors
def orders_collection(request):
    if request.method == 'POST':
        return _create_order(request)

    status = request.GET.get('status') or None
    if status and status not in OrderStatus.values:
        raise OrderValidationError({'status': [f'Unknown status {status}']})

    orders, count = _service().list_orders(
        status=status,
        limit=_int_param(request, 'limit', get_setting('DEFAULT_PAGE_SIZE'), minimum=1),
        offset=_int_param(request, 'offset', 0),
    )
    return JsonResponse({
        'results': [serialize_order(order) for order in orders],
        'count': count,
    })


def _create_order(request):
    form = OrderCreateForm(_json_body(request))
    data = validate(form)
    order = _service().create_order(
        items=form.cleaned_items,
        customer_id=data.get('customer_id'),
        notes=data.get('notes', ''),
    )
    return JsonResponse(serialize_order(order), status=201)


@csrf_exempt
@require_http_methods(['GET', 'PATCH'])
@order_errors
def order_detail(request, order_id):
    service = _service()
    if request.method == 'PATCH':
        form = OrderUpdateForm(_json_body(request))
        validate(form)
        order = service.update_order(order_id, **form.changes)
    else:
        order = service.get_order(order_id)
    return JsonResponse(serialize_order(order))


@csrf_exempt
@require_POST
@order_errors
def order_cancel(request, order_id):
    order = _service().cancel_order(order_id)
    return JsonResponse(serialize_order(order))


@require_GET
@order_errors
def order_stats(request):
    date = None
    raw = request.GET.get('date')
    if raw:
        try:
            date = parse_date(raw)
        except ValueError:
            date = None
        if date is None:
            raise OrderValidationError({'date': ['Expected YYYY-MM-DD']})
    return JsonResponse(_service().get_order_stats(date))


# =============================================================================
# Event stream
# =============================================================================

class EventStream:
    """
    SSE body for one subscriber.

    Django calls close() when the response is closed, which is also what the
    server does once the client disconnects.
    """

    def __init__(self, subscription, keepalive):
        self.subscription = subscription
        self.keepalive = keepalive

    def __iter__(self):
        yield ': connected\n\n'
        for event in self.subscription.listen(keepalive=self.keepalive):
            if event is None:
                yield ': keepalive\n\n'
            else:
                yield f"data: {event.to_json()}\n\n"

    def close(self):
        self.subscription.close()


@require_GET
def order_events(request):
    subscription = _event_bus().subscribe()
    response = StreamingHttpResponse(
        EventStream(subscription, get_setting('EVENT_KEEPALIVE_SECONDS')),
        content_type='text/event-stream',
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


@require_GET
def health(request):
    return JsonResponse({
        'status': 'ok',
        'event_subscribers': _event_bus().subscriber_count,
    })
