from django.contrib import admin
from django.urls import include, path

from orders import views as order_views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", order_views.health, name="health"),
    path("health", order_views.health),
    path("orders", order_views.orders_collection),
    path("orders/", include("orders.urls")),
    path("events/orders/", order_views.order_events, name="order_events"),
    path("events/orders", order_views.order_events),
]
