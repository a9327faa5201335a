"""
Test suite for the catalog
Tests: categories, products, barcode generation, filters, labels
"""
from decimal import Decimal
from io import StringIO
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from shopdesk.catalog.models import Product
from shopdesk.catalog.utils import generate_barcode, normalize_barcode
from shopdesk.core.cache_utils import cache_dashboard, get_cached_dashboard
from shopdesk.core.models import ActivityLog, User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.inventory.models import StockMovement


class BarcodeUtilsTests(TestCase):
    """Test barcode helpers"""

    def setUp(self):
        self.shop = TestDataFactory.create_shop()

    def test_generate_barcode_from_category(self):
        category = TestDataFactory.create_category(self.shop, name='Phones')
        product = TestDataFactory.create_product(self.shop, category=category, barcode='X')
        self.assertEqual(generate_barcode(product), 'PHO-0001')

    def test_generate_barcode_continues_numbering(self):
        category = TestDataFactory.create_category(self.shop, name='Phones')
        TestDataFactory.create_product(self.shop, category=category, barcode='PHO-0007')
        product = TestDataFactory.create_product(self.shop, category=category, barcode='X')
        self.assertEqual(generate_barcode(product), 'PHO-0008')

    def test_generate_barcode_from_name(self):
        product = TestDataFactory.create_product(self.shop, name='Usb cable', barcode='X')
        self.assertEqual(generate_barcode(product), 'USB-0001')

    def test_normalize_barcode(self):
        self.assertEqual(normalize_barcode(' pho 0001 '), 'PHO-0001')
        self.assertEqual(normalize_barcode(None), '')


class ProductModelTests(TestCase):

    def test_stock_flags(self):
        shop = TestDataFactory.create_shop()
        product = TestDataFactory.create_product(shop, stock=3, low_stock_threshold=5)
        self.assertTrue(product.is_low_stock)
        self.assertFalse(product.is_out_of_stock)
        product.stock = 0
        self.assertTrue(product.is_out_of_stock)


class CategoryAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_category(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Accessories'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shop'], self.shop.id)

    def test_duplicate_category_name(self):
        TestDataFactory.create_category(self.shop, name='Accessories')
        response = self.client.post('/api/v1/categories/', {'name': 'accessories'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_person_reads_only(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        self.assertEqual(self.client.get('/api/v1/categories/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/categories/', {'name': 'Cases'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.category = TestDataFactory.create_category(self.shop, name='Phones')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_product_with_opening_stock(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Galaxy A54',
            'price': '349.00',
            'category': self.category.id,
            'initial_stock': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['barcode'], 'PHO-0001')
        self.assertEqual(response.data['stock'], 4)
        movement = StockMovement.objects.get(product_id=response.data['id'])
        self.assertEqual(movement.movement_type, 'add')
        self.assertEqual(movement.stock_after, 4)

    def test_stock_is_read_only(self):
        product = TestDataFactory.create_product(self.shop, stock=2)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'stock': 100}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.stock, 2)

    def test_discount_percent_range(self):
        product = TestDataFactory.create_product(self.shop)
        url = f'/api/v1/products/{product.id}/'
        response = self.client.patch(url, {'discount_percent': '150'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(url, {'discount_percent': '12.5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount_percent'], '12.50')

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/products/', {'name': 'Broken', 'price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('price', response.data)

    def test_duplicate_barcode_rejected(self):
        TestDataFactory.create_product(self.shop, barcode='PHO-0001')
        response = self.client.post('/api/v1/products/', {'name': 'Copy', 'price': '1', 'barcode': 'pho-0001'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('barcode', response.data)

    def test_product_limit_of_plan(self):
        plan = TestDataFactory.create_pricing_plan(max_products=1)
        self.shop.pricing_plan = plan
        self.shop.save()
        TestDataFactory.create_product(self.shop)
        response = self.client.post('/api/v1/products/', {'name': 'One more', 'price': '5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Product limit reached')

    def test_price_change_logged(self):
        product = TestDataFactory.create_product(self.shop, price=Decimal('10.00'))
        self.client.patch(f'/api/v1/products/{product.id}/', {'price': '12.00'}, format='json')
        log = ActivityLog.objects.get(action='price_change', object_id=str(product.id))
        self.assertEqual(log.changes['price'], {'old': '10.00', 'new': '12.00'})

    def test_list_filters_and_pagination(self):
        for index in range(12):
            TestDataFactory.create_product(self.shop, name=f'Cable {index}', stock=index)
        TestDataFactory.create_product(self.shop, name='Charger', stock=0)

        response = self.client.get('/api/v1/products/?name=cable')
        self.assertEqual(response.data['count'], 12)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(len(response.data['results']), 10)

        response = self.client.get('/api/v1/products/?name=cable&page=2')
        self.assertEqual(len(response.data['results']), 2)
        self.assertIsNone(response.data['next'])

        response = self.client.get('/api/v1/products/?out_of_stock=true')
        self.assertEqual(response.data['count'], 2)

    def test_low_stock(self):
        TestDataFactory.create_product(self.shop, stock=2, low_stock_threshold=5)
        TestDataFactory.create_product(self.shop, stock=20, low_stock_threshold=5)
        response = self.client.get('/api/v1/products/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_by_barcode(self):
        product = TestDataFactory.create_product(self.shop, barcode='PHO-0042')
        response = self.client.get('/api/v1/products/by-barcode/?barcode=pho-0042')
        self.assertEqual(response.data['id'], product.id)
        response = self.client.get('/api/v1/products/by-barcode/?barcode=nothing')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_label(self):
        product = TestDataFactory.create_product(self.shop, barcode='PHO-0003')
        response = self.client.get(f'/api/v1/products/{product.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['barcode'], 'PHO-0003')
        self.assertTrue(response.data['image'].startswith('data:image/png;base64,'))

    def test_delete_sold_product_deactivates(self):
        product = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_sale(self.admin, self.shop, items=[(product, 1)])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertFalse(product.is_active)

    def test_delete_unsold_product(self):
        product = TestDataFactory.create_product(self.shop)
        self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_other_shop_products_hidden(self):
        other = TestDataFactory.create_product(TestDataFactory.create_shop())
        response = self.client.get(f'/api/v1/products/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BackfillBarcodesCommandTests(TestCase):

    def test_backfill(self):
        shop = TestDataFactory.create_shop()
        category = TestDataFactory.create_category(shop, name='Tablets')
        product = TestDataFactory.create_product(shop, category=category)
        Product.objects.filter(pk=product.pk).update(barcode='')
        out = StringIO()
        call_command('backfill_barcodes', '--dry-run', stdout=out)
        product.refresh_from_db()
        self.assertEqual(product.barcode, '')
        self.assertIn('TAB-0001', out.getvalue())

        call_command('backfill_barcodes', stdout=StringIO())
        product.refresh_from_db()
        self.assertEqual(product.barcode, 'TAB-0001')

    def test_backfill_invalidates_each_shop_once(self):
        cache.clear()
        shop = TestDataFactory.create_shop()
        for _ in range(3):
            TestDataFactory.create_product(shop)
        Product.objects.filter(shop=shop).update(barcode='')
        _, cache_key = get_cached_dashboard('shop', shop.pk)
        cache_dashboard(cache_key, {'products': 3})

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            call_command('backfill_barcodes', '--shop', str(shop.pk), stdout=StringIO())

        # Per-product save signals stay quiet while the command runs
        self.assertEqual(callbacks, [])
        self.assertFalse(Product.objects.filter(shop=shop, barcode='').exists())
        cached_data, _ = get_cached_dashboard('shop', shop.pk)
        self.assertIsNone(cached_data)
