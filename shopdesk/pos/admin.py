from django.contrib import admin
from .models import Cart, CartItem, Sale, SaleItem, Repair


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['cart_number', 'shop', 'sales_person', 'client', 'status', 'discount', 'updated_at']
    list_filter = ['status']
    search_fields = ['cart_number', 'client__name']
    inlines = [CartItemInline]


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'price', 'total']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_number', 'shop', 'sales_person', 'client', 'subtotal', 'tax', 'discount', 'total',
                    'created_at']
    list_filter = ['created_at']
    search_fields = ['sale_number', 'client__name', 'sales_person__username']
    ordering = ['-created_at']
    inlines = [SaleItemInline]
    readonly_fields = ['subtotal', 'tax', 'discount', 'total', 'tax_rate', 'created_at']


@admin.register(Repair)
class RepairAdmin(admin.ModelAdmin):
    list_display = ['barcode', 'shop', 'customer_name', 'brand', 'model_name', 'status', 'repairman', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['barcode', 'customer_name', 'dni', 'imei', 'brand', 'model_name']
    ordering = ['-created_at']
