from django.contrib import admin
from .models import Category, Product, Customer


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'price', 'stock', 'is_active']
    list_filter = ['is_active', 'category']
    search_fields = ['name', 'sku']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['display_name', 'email', 'phone']
    search_fields = ['first_name', 'last_name', 'email']
