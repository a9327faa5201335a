from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, ActivityLog, Notification, FeatureFlag


class UserSerializer(serializers.ModelSerializer):
    shop_name = serializers.CharField(source='shop.name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role', 'shop', 'shop_name',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone', 'role', 'shop']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class ActivityLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'username', 'shop', 'action', 'model_name', 'object_id', 'object_name',
                  'description', 'changes', 'ip_address', 'created_at']


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'user', 'title', 'message', 'notification_type', 'is_read', 'created_at']
        read_only_fields = ['user', 'created_at']


class FeatureFlagSerializer(serializers.ModelSerializer):
    class Meta:
        model = FeatureFlag
        fields = ['id', 'name', 'description', 'is_enabled', 'enabled_tiers', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_enabled_tiers(self, value):
        from shopdesk.shops.models import Shop
        valid = {choice for choice, _ in Shop.TIER_CHOICES}
        unknown = [tier for tier in value if tier not in valid]
        if unknown:
            raise serializers.ValidationError(f"Unknown tier(s): {', '.join(unknown)}")
        return value
