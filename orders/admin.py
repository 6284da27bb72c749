from django.contrib import admin
from .models import Order, OrderItem, OrderSequence


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ['product', 'product_name', 'quantity', 'unit_price', 'subtotal', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'status', 'total_amount', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['order_number', 'customer__first_name', 'customer__last_name']
    readonly_fields = ['order_number', 'status', 'total_amount', 'created_at', 'updated_at']
    inlines = [OrderItemInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(OrderSequence)
class OrderSequenceAdmin(admin.ModelAdmin):
    list_display = ['day', 'last_value']
    readonly_fields = ['day', 'last_value']
