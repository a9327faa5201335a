from rest_framework import serializers
from .models import Client, Provider


class ClientSerializer(serializers.ModelSerializer):
    sale_count = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'shop', 'name', 'id_number', 'phone', 'email', 'address', 'status', 'payment_method',
            'unpaid_balance', 'last_purchase_at', 'sale_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['shop', 'last_purchase_at', 'created_at', 'updated_at']

    def get_sale_count(self, obj):
        return obj.sales.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value


class ProviderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Provider
        fields = [
            'id', 'shop', 'name', 'document', 'contact_person', 'phone', 'email', 'address', 'balance',
            'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['shop', 'created_at', 'updated_at']
