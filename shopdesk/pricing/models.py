from django.db import models
from decimal import Decimal


class PricingPlan(models.Model):
    """Subscription plans offered to shops by the platform"""
    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    max_staff = models.PositiveIntegerField(default=1)
    max_products = models.PositiveIntegerField(default=100)
    features = models.JSONField(default=list, blank=True)  # e.g. ["POS", "Repair book", "Reports"]
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'pricing_plans'
        ordering = ['price', 'name']
