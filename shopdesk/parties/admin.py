from django.contrib import admin
from .models import Client, Provider


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'id_number', 'phone', 'status', 'unpaid_balance', 'last_purchase_at']
    list_filter = ['status', 'payment_method']
    search_fields = ['name', 'id_number', 'phone', 'email']
    ordering = ['name']


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ['name', 'shop', 'document', 'phone', 'balance', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'document', 'contact_person']
    ordering = ['name']
