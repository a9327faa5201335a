from django.conf import settings
from django.db import models


def default_tax_rate():
    return settings.SHOPDESK_DEFAULT_TAX_RATE


class Shop(models.Model):
    """A tenant shop owned by an admin user"""
    TIER_CHOICES = [
        ('silver', 'Silver'),
        ('gold', 'Gold'),
        ('platinum', 'Platinum'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('trial', 'Trial'),
        ('suspended', 'Suspended'),
        ('cancelled', 'Cancelled'),
    ]

    SHOP_TYPE_CHOICES = [
        ('retail', 'Retail Shop'),
        ('repair', 'Repair Shop'),
        ('wholesale', 'Wholesale Shop'),
    ]

    name = models.CharField(max_length=200)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='owned_shops')
    shop_type = models.CharField(max_length=20, choices=SHOP_TYPE_CHOICES, default='retail')
    subscription_tier = models.CharField(max_length=20, choices=TIER_CHOICES, default='silver')
    subscription_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    pricing_plan = models.ForeignKey('pricing.PricingPlan', on_delete=models.SET_NULL, null=True, blank=True, related_name='shops')
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=default_tax_rate)  # 0.1000 for 10%
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_subscription_active(self):
        return self.subscription_status in ('active', 'trial')

    class Meta:
        db_table = 'shops'
        ordering = ['name']
