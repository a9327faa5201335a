from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    ordering = ['name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'barcode', 'category', 'price', 'stock', 'low_stock_threshold', 'discount_percent', 'is_active']
    list_filter = ['is_active', 'category']
    search_fields = ['name', 'barcode', 'description']
    ordering = ['name']
    readonly_fields = ['stock', 'created_at', 'updated_at']
