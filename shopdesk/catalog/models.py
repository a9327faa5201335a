from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Product categories of one shop"""
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='categories')
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['shop', 'name'], name='uniq_category_shop_name'),
        ]


class Product(models.Model):
    """Product master; ``stock`` is the sellable unit count"""
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    barcode = models.CharField(max_length=100, blank=True, db_index=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    # Percentage off the list price, shown to shops buying from a wholesaler
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    stock = models.IntegerField(default=0)
    low_stock_threshold = models.IntegerField(default=5)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.barcode or 'NO-BARCODE'})"

    @property
    def is_low_stock(self):
        return self.stock < self.low_stock_threshold

    @property
    def is_out_of_stock(self):
        return self.stock <= 0

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name='product_stock_non_negative'),
            models.CheckConstraint(condition=models.Q(discount_percent__gte=0, discount_percent__lte=100),
                                   name='product_discount_percent_range'),
        ]
        indexes = [
            models.Index(fields=['shop', 'barcode'], name='idx_product_shop_barcode'),
        ]
