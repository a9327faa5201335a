from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff account; the role decides which dashboards and endpoints are reachable"""
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_ADMIN = 'admin'
    ROLE_SALES_PERSON = 'sales_person'
    ROLE_REPAIR_MAN = 'repair_man'
    ROLE_WHOLESALER = 'wholesaler'

    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Admin'),
        (ROLE_ADMIN, 'Shop Admin'),
        (ROLE_SALES_PERSON, 'Sales Person'),
        (ROLE_REPAIR_MAN, 'Repair Man'),
        (ROLE_WHOLESALER, 'Wholesaler'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_SALES_PERSON, db_index=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    shop = models.ForeignKey('shops.Shop', on_delete=models.SET_NULL, null=True, blank=True, related_name='staff')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_super_admin(self):
        return self.is_superuser or self.role == self.ROLE_SUPER_ADMIN

    class Meta:
        db_table = 'users'
        ordering = ['username']


class ActivityLog(models.Model):
    """Activity log for operations that change shop data"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_add', 'Stock Added'),
        ('stock_remove', 'Stock Removed'),
        ('stock_wastage', 'Stock Moved to Wastage'),
        ('price_change', 'Price Change'),
        ('cart_add', 'Add to Cart'),
        ('cart_remove', 'Remove from Cart'),
        ('cart_update', 'Cart Update'),
        ('sale_complete', 'Sale Completed'),
        ('repair_status_update', 'Repair Status Updated'),
        ('subscription_change', 'Subscription Changed'),
        ('feature_flag_toggle', 'Feature Flag Toggled'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='activity_logs')
    shop = models.ForeignKey('shops.Shop', on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, sale number)")
    description = models.TextField(blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_activity_created'),
            models.Index(fields=['action'], name='idx_activity_action'),
            models.Index(fields=['model_name'], name='idx_activity_model'),
        ]


class Notification(models.Model):
    """In-app notifications shown in the dashboard header"""
    TYPE_CHOICES = [
        ('info', 'Info'),
        ('warning', 'Warning'),
        ('low_stock', 'Low Stock'),
        ('sale', 'Sale'),
        ('repair', 'Repair'),
        ('subscription', 'Subscription'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)
    notification_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='info')
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at', '-id']


class FeatureFlag(models.Model):
    """Platform feature switches managed by the super admin"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    is_enabled = models.BooleanField(default=False)
    # Empty list means every subscription tier
    enabled_tiers = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def is_enabled_for(self, shop=None):
        if not self.is_enabled:
            return False
        if not self.enabled_tiers or shop is None:
            return True
        return shop.subscription_tier in self.enabled_tiers

    class Meta:
        db_table = 'feature_flags'
        ordering = ['name']
