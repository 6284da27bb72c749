"""Orders Module URL Configuration"""

from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    path('', views.orders_collection, name='list'),
    path('stats/', views.order_stats, name='stats'),
    path('<int:order_id>/', views.order_detail, name='detail'),
    path('<int:order_id>/cancel/', views.order_cancel, name='cancel'),

    # Same views without the trailing slash, so clients need no redirect.
    path('stats', views.order_stats),
    path('<int:order_id>', views.order_detail),
    path('<int:order_id>/cancel', views.order_cancel),
]
