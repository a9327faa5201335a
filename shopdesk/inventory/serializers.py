from rest_framework import serializers
from .models import StockReason, StockMovement


class StockReasonSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockReason
        fields = ['id', 'shop', 'name', 'reason_type', 'description', 'is_active', 'created_at']
        read_only_fields = ['shop', 'created_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Please enter a reason name')
        return value


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_barcode = serializers.CharField(source='product.barcode', read_only=True)
    reason_name = serializers.CharField(source='reason.name', read_only=True)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True)
    sale_number = serializers.CharField(source='sale.sale_number', read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'shop', 'product', 'product_name', 'product_barcode', 'movement_type', 'quantity',
            'reason', 'reason_name', 'notes', 'stock_after', 'sale', 'sale_number',
            'created_by', 'created_by_name', 'created_at'
        ]
        read_only_fields = fields


class StockMovementCreateSerializer(serializers.Serializer):
    """Manual stock change; sales create their movements themselves"""
    product = serializers.IntegerField()
    movement_type = serializers.ChoiceField(choices=['add', 'remove', 'wastage'])
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
