from rest_framework import serializers
from .models import Shop


class ShopSerializer(serializers.ModelSerializer):
    owner_username = serializers.CharField(source='owner.username', read_only=True)
    pricing_plan_name = serializers.CharField(source='pricing_plan.name', read_only=True)
    staff_count = serializers.SerializerMethodField()
    is_subscription_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = Shop
        fields = [
            'id', 'name', 'owner', 'owner_username', 'shop_type', 'subscription_tier', 'subscription_status',
            'is_subscription_active', 'pricing_plan', 'pricing_plan_name', 'tax_rate', 'address', 'phone',
            'email', 'is_active', 'staff_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_staff_count(self, obj):
        return obj.staff.filter(is_active=True).count()

    def validate_tax_rate(self, value):
        if value < 0 or value >= 1:
            raise serializers.ValidationError('Tax rate must be a fraction between 0 and 1 (0.10 for 10%)')
        return value


class ShopOwnerSerializer(ShopSerializer):
    """Fields a shop admin may edit on their own shop"""

    class Meta(ShopSerializer.Meta):
        read_only_fields = ['owner', 'subscription_tier', 'subscription_status', 'pricing_plan', 'is_active',
                            'created_at', 'updated_at']


class SubscribeSerializer(serializers.Serializer):
    pricing_plan = serializers.IntegerField()
    subscription_tier = serializers.ChoiceField(choices=Shop.TIER_CHOICES, required=False)
