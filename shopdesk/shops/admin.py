from django.contrib import admin
from .models import Shop


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'shop_type', 'subscription_tier', 'subscription_status', 'pricing_plan',
                    'is_active', 'created_at']
    list_filter = ['shop_type', 'subscription_tier', 'subscription_status', 'is_active']
    search_fields = ['name', 'owner__username', 'email', 'phone']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']
