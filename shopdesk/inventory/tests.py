"""
Test suite for stock movements
Tests: add / remove / wastage, insufficient stock, reasons, low-stock notifications
"""
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from shopdesk.core.context import ShopContext
from shopdesk.core.models import ActivityLog, Notification, User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.inventory.models import StockMovement
from shopdesk.inventory.services import StockError, apply_stock_movement


class ApplyStockMovementTests(TestCase):
    """Test the stock service directly"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.ctx = ShopContext(self.admin, shop=self.shop)
        self.product = TestDataFactory.create_product(self.shop, stock=10, low_stock_threshold=5)

    def test_add(self):
        movement = apply_stock_movement(self.ctx, self.product, 'add', 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 15)
        self.assertEqual(movement.stock_after, 15)
        self.assertTrue(ActivityLog.objects.filter(action='stock_add').exists())

    def test_remove_more_than_stock(self):
        with self.assertRaises(StockError) as raised:
            apply_stock_movement(self.ctx, self.product, 'remove', 11)
        self.assertEqual(raised.exception.code, 'insufficient_stock')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockMovement.objects.exists())

    def test_wastage_needs_reason(self):
        with self.assertRaises(StockError) as raised:
            apply_stock_movement(self.ctx, self.product, 'wastage', 1)
        self.assertEqual(raised.exception.code, 'reason_required')

    def test_reason_of_other_shop(self):
        reason = TestDataFactory.create_stock_reason(TestDataFactory.create_shop())
        with self.assertRaises(StockError) as raised:
            apply_stock_movement(self.ctx, self.product, 'wastage', 1, reason=reason)
        self.assertEqual(raised.exception.code, 'invalid_reason')

    def test_invalid_quantity(self):
        for quantity in (0, -3, 'many'):
            with self.assertRaises(StockError):
                apply_stock_movement(self.ctx, self.product, 'add', quantity)

    def test_crossing_threshold_notifies_admins(self):
        apply_stock_movement(self.ctx, self.product, 'remove', 6)
        notification = Notification.objects.get(user=self.admin, notification_type='low_stock')
        self.assertIn(self.product.name, notification.message)
        # Already below the threshold: no second notification
        apply_stock_movement(self.ctx, self.product, 'remove', 1)
        self.assertEqual(Notification.objects.filter(notification_type='low_stock').count(), 1)


class StockMovementAPITests(TestCase):
    """Test stock movement endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.product = TestDataFactory.create_product(self.shop, name='Screen protector', stock=10)
        self.reason = TestDataFactory.create_stock_reason(self.shop, name='Broken in transit')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_wastage(self):
        response = self.client.post('/api/v1/stock-movements/', {
            'product': self.product.id, 'movement_type': 'wastage', 'quantity': 3, 'reason': self.reason.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_after'], 7)
        self.assertEqual(response.data['reason_name'], 'Broken in transit')

    def test_insufficient_stock(self):
        response = self.client.post('/api/v1/stock-movements/', {
            'product': self.product.id, 'movement_type': 'remove', 'quantity': 11,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertIn('Only 10 available', response.data['message'])

    def test_sale_movements_not_allowed_by_hand(self):
        response = self.client.post('/api/v1/stock-movements/', {
            'product': self.product.id, 'movement_type': 'sale', 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history_filtered_by_product(self):
        other = TestDataFactory.create_product(self.shop, stock=5)
        ctx = ShopContext(self.admin, shop=self.shop)
        apply_stock_movement(ctx, self.product, 'add', 1)
        apply_stock_movement(ctx, other, 'add', 1)
        response = self.client.get(f'/api/v1/stock-movements/?product={self.product.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_sales_person_cannot_adjust_stock(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        response = self.client.post('/api/v1/stock-movements/', {
            'product': self.product.id, 'movement_type': 'add', 'quantity': 1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stock_reasons(self):
        response = self.client.post('/api/v1/stock-reasons/', {'name': 'Expired', 'reason_type': 'wastage'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/stock-reasons/?reason_type=wastage')
        self.assertEqual(response.data['count'], 2)


class CheckStockSyncCommandTests(TestCase):

    def test_reports_products_out_of_sync(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        ctx = ShopContext(admin, shop=shop)
        tracked = TestDataFactory.create_product(shop, name='Tracked', stock=0)
        apply_stock_movement(ctx, tracked, 'add', 5)
        apply_stock_movement(ctx, tracked, 'remove', 2)
        TestDataFactory.create_product(shop, name='Untracked', stock=4)

        out = StringIO()
        call_command('check_stock_sync', stdout=out)
        output = out.getvalue()
        self.assertIn('Untracked', output)
        self.assertNotIn('Tracked:', output)
        self.assertIn('1 product(s) out of sync', output)
