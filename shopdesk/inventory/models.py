from django.db import models
from shopdesk.catalog.models import Product


class StockReason(models.Model):
    """Reasons offered when stock is removed or written off"""
    REASON_TYPE_CHOICES = [
        ('stock_adjustment', 'Stock Adjustment'),
        ('wastage', 'Wastage'),
        ('return', 'Return'),
        ('damage', 'Damage'),
    ]

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='stock_reasons')
    name = models.CharField(max_length=200)
    reason_type = models.CharField(max_length=20, choices=REASON_TYPE_CHOICES, default='wastage')
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'stock_reasons'
        ordering = ['name']


class StockMovement(models.Model):
    """One change of a product's stock, manual or caused by a sale"""
    MOVEMENT_TYPE_CHOICES = [
        ('add', 'Stock Added'),
        ('remove', 'Stock Removed'),
        ('wastage', 'Moved to Wastage'),
        ('sale', 'Sold'),
    ]
    OUTGOING_TYPES = ('remove', 'wastage', 'sale')

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='stock_movements')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_movements')
    movement_type = models.CharField(max_length=10, choices=MOVEMENT_TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    reason = models.ForeignKey(StockReason, on_delete=models.SET_NULL, null=True, blank=True, related_name='movements')
    notes = models.TextField(blank=True)
    stock_after = models.IntegerField()
    sale = models.ForeignKey('pos.Sale', on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_movements')
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.quantity} x {self.product_id}"

    @property
    def signed_quantity(self):
        return -self.quantity if self.movement_type in self.OUTGOING_TYPES else self.quantity

    class Meta:
        db_table = 'stock_movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'created_at'], name='idx_movement_product_created'),
            models.Index(fields=['movement_type'], name='idx_movement_type'),
        ]
