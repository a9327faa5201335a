from django.db import models
from decimal import Decimal
from shopdesk.catalog.models import Product
from shopdesk.core.models import User
from shopdesk.parties.models import Client


class Cart(models.Model):
    """POS carts; the lines live in CartItem"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('held', 'Held'),
        ('cancelled', 'Cancelled'),
    ]

    cart_number = models.CharField(max_length=100, unique=True)
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='carts')
    sales_person = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='carts')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='carts')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.cart_number

    class Meta:
        db_table = 'carts'
        ordering = ['-updated_at']


class CartItem(models.Model):
    """Cart items"""
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'cart_items'
        ordering = ['added_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product'], name='uniq_cartitem_cart_product'),
        ]


class Sale(models.Model):
    """A committed sale; amounts are stored rounded to cents"""
    sale_number = models.CharField(max_length=100, unique=True)
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='sales')
    sales_person = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='sales')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0.1000'))
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return self.sale_number

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(condition=models.Q(total__gte=0), name='sale_total_non_negative'),
        ]
        indexes = [
            models.Index(fields=['shop', 'created_at'], name='idx_sale_shop_created'),
        ]


class SaleItem(models.Model):
    """Sale items; the product name is copied so renames keep receipts intact"""
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sale_items')
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = 'sale_items'
        ordering = ['id']


class Repair(models.Model):
    """Devices booked in for repair"""
    STATUS_CHOICES = [
        ('received', 'Received'),
        ('work_in_progress', 'Work in Progress'),
        ('done', 'Done'),
        ('delivered', 'Delivered'),
    ]
    # Statuses only move forward
    STATUS_FLOW = ['received', 'work_in_progress', 'done', 'delivered']

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='repairs')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='repairs')
    customer_name = models.CharField(max_length=200)
    dni = models.CharField(max_length=50, blank=True)
    contact_no = models.CharField(max_length=20, blank=True)
    brand = models.CharField(max_length=100)
    model_name = models.CharField(max_length=200, help_text='Device model name given for repair')
    imei = models.CharField(max_length=50, blank=True, db_index=True)
    defect = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    repairman = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_repairs')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='received', db_index=True)
    booking_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    barcode = models.CharField(max_length=100, unique=True, db_index=True, help_text='Barcode for tracking repair')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='repairs_created')
    updated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='repairs_updated')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Repair {self.barcode} - {self.brand} {self.model_name}"

    def can_move_to(self, new_status):
        if new_status not in self.STATUS_FLOW:
            return False
        return self.STATUS_FLOW.index(new_status) > self.STATUS_FLOW.index(self.status)

    class Meta:
        db_table = 'repairs'
        ordering = ['-created_at', '-id']
