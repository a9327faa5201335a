from django.db import models
from decimal import Decimal


class Client(models.Model):
    """Shop customers"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Credit Card'),
        ('transfer', 'Bank Transfer'),
    ]

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='clients')
    name = models.CharField(max_length=200, db_index=True)
    id_number = models.CharField(max_length=50, blank=True, db_index=True)  # DNI / NIE / passport
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    unpaid_balance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    last_purchase_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'clients'
        ordering = ['name']


class Provider(models.Model):
    """Suppliers; a negative balance is owed to the provider"""
    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='providers')
    name = models.CharField(max_length=200)
    document = models.CharField(max_length=50, blank=True)  # CIF / DNI / passport
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    balance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'providers'
        ordering = ['name']
