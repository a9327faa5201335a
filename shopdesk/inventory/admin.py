from django.contrib import admin
from .models import StockReason, StockMovement


@admin.register(StockReason)
class StockReasonAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'reason_type', 'is_active', 'created_at']
    list_filter = ['reason_type', 'is_active']
    search_fields = ['name', 'description']


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ['product', 'shop', 'movement_type', 'quantity', 'stock_after', 'reason', 'created_by', 'created_at']
    list_filter = ['movement_type', 'created_at']
    search_fields = ['product__name', 'product__barcode', 'notes']
    ordering = ['-created_at']
    readonly_fields = ['shop', 'product', 'movement_type', 'quantity', 'reason', 'stock_after', 'sale',
                      'created_by', 'created_at']
