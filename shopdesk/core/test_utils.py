"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from shopdesk.catalog.models import Category, Product
from shopdesk.inventory.models import StockReason
from shopdesk.parties.models import Client, Provider
from shopdesk.pos.models import Repair, Sale, SaleItem
from shopdesk.pos.services import create_cart
from shopdesk.pricing.models import PricingPlan
from shopdesk.shops.models import Shop
from decimal import Decimal
from django.utils import timezone
import random
import string
import uuid

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_ADMIN, shop=None,
                    is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            shop=shop,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_super_admin(username=None):
        return TestDataFactory.create_user(username=username, role=User.ROLE_SUPER_ADMIN)

    @staticmethod
    def create_pricing_plan(name=None, price=None, max_staff=5, max_products=100, features=None):
        """Create a test pricing plan"""
        if not name:
            name = f'Plan_{TestDataFactory.random_string(6)}'
        return PricingPlan.objects.create(
            name=name,
            price=price if price is not None else Decimal('29.99'),
            max_staff=max_staff,
            max_products=max_products,
            features=features or ['POS'],
        )

    @staticmethod
    def create_shop(name=None, owner=None, pricing_plan=None, tax_rate=None, subscription_tier='silver'):
        """Create a test shop; the owner becomes its admin"""
        if not name:
            name = f'Shop_{TestDataFactory.random_string(6)}'
        if owner is None:
            owner = TestDataFactory.create_user()
        shop = Shop.objects.create(
            name=name,
            owner=owner,
            pricing_plan=pricing_plan,
            tax_rate=tax_rate if tax_rate is not None else Decimal('0.10'),
            subscription_tier=subscription_tier,
            address=f'Test Address {name}',
            phone='1234567890',
        )
        if owner.shop_id is None and not owner.is_super_admin:
            owner.shop = shop
            owner.role = User.ROLE_ADMIN
            owner.save(update_fields=['shop', 'role'])
        return shop

    @staticmethod
    def create_category(shop, name=None, description=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            shop=shop,
            name=name,
            description=description or f'Test category {name}'
        )

    @staticmethod
    def create_product(shop, name=None, price=None, stock=10, barcode=None, category=None, low_stock_threshold=5,
                       discount_percent=None, is_active=True):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not barcode:
            barcode = f'BC-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            shop=shop,
            name=name,
            price=price if price is not None else Decimal('10.00'),
            stock=stock,
            barcode=barcode,
            category=category,
            low_stock_threshold=low_stock_threshold,
            discount_percent=discount_percent if discount_percent is not None else Decimal('0.00'),
            is_active=is_active,
        )

    @staticmethod
    def create_client(shop, name=None, phone=None, email=None):
        """Create a test client"""
        if not name:
            name = f'Client_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'6{random.randint(10000000, 99999999)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Client.objects.create(
            shop=shop,
            name=name,
            id_number=f'ID{random.randint(1000000, 9999999)}',
            phone=phone,
            email=email
        )

    @staticmethod
    def create_provider(shop, name=None, phone=None, email=None):
        """Create a test provider"""
        if not name:
            name = f'Provider_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(10000000, 99999999)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Provider.objects.create(
            shop=shop,
            name=name,
            phone=phone,
            email=email
        )

    @staticmethod
    def create_stock_reason(shop, name=None, reason_type='wastage'):
        if not name:
            name = f'Reason_{TestDataFactory.random_string(6)}'
        return StockReason.objects.create(shop=shop, name=name, reason_type=reason_type)

    @staticmethod
    def create_cart(user, shop, client=None):
        """Create a test cart"""
        from .context import ShopContext
        return create_cart(ShopContext(user, shop=shop), shop, client=client)

    @staticmethod
    def create_sale(user, shop, items=None, client=None, discount=Decimal('0.00')):
        """
        Create a stored sale without touching stock

        items: list of (product, quantity) tuples
        """
        sale_number = f"SALE-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        subtotal = sum((product.price * quantity for product, quantity in items or []), Decimal('0.00'))
        tax = (subtotal * shop.tax_rate).quantize(Decimal('0.01'))
        sale = Sale.objects.create(
            sale_number=sale_number,
            shop=shop,
            sales_person=user,
            client=client,
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            total=subtotal + tax - discount,
            tax_rate=shop.tax_rate,
        )
        for product, quantity in items or []:
            SaleItem.objects.create(sale=sale, product=product, product_name=product.name, quantity=quantity,
                                    price=product.price, total=product.price * quantity)
        return sale

    @staticmethod
    def create_repair(shop, user=None, repairman=None, status='received', customer_name=None):
        """Create a test repair"""
        return Repair.objects.create(
            shop=shop,
            customer_name=customer_name or f'Customer_{TestDataFactory.random_string(6)}',
            contact_no='600000000',
            brand='Samsung',
            model_name='Galaxy S21',
            imei=f'35{random.randint(1000000000000, 9999999999999)}',
            defect='Broken screen',
            repairman=repairman,
            status=status,
            barcode=f'REP-TEST-{TestDataFactory.random_string(8).upper()}',
            created_by=user,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
