from rest_framework import serializers
from .models import PricingPlan


class PricingPlanSerializer(serializers.ModelSerializer):
    shop_count = serializers.SerializerMethodField()

    class Meta:
        model = PricingPlan
        fields = ['id', 'name', 'price', 'max_staff', 'max_products', 'features', 'is_active',
                  'shop_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_shop_count(self, obj):
        return obj.shops.count()

    def validate_features(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('Features must be a list of strings')
        return [item.strip() for item in value if item.strip()]
