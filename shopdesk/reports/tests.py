"""
Test suite for dashboards and reports
Tests: shop dashboard, caching and invalidation, platform analytics, repairs dashboard, sales summary,
wholesaler dashboard
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from shopdesk.core.cache_utils import invalidate_dashboard_cache
from shopdesk.core.models import User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class DashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.product = TestDataFactory.create_product(self.shop, price=Decimal('10.00'), stock=2)
        TestDataFactory.create_product(self.shop, stock=0)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_shop_dashboard(self):
        TestDataFactory.create_sale(self.seller, self.shop, items=[(self.product, 2)])
        TestDataFactory.create_repair(self.shop, user=self.seller)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['today']['revenue'], '22.00')
        self.assertEqual(response.data['today']['sale_count'], 1)
        self.assertEqual(response.data['products'], {'total': 2, 'low_stock': 1, 'out_of_stock': 1})
        self.assertEqual(response.data['open_repairs'], 1)
        self.assertEqual(response.data['staff'], 2)

    def test_dashboard_is_cached_until_invalidated(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response['X-Cache'], 'MISS')
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response['X-Cache'], 'HIT')
        invalidate_dashboard_cache(self.shop.id)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response['X-Cache'], 'MISS')

    def test_sales_person_sees_own_figures(self):
        TestDataFactory.create_sale(self.seller, self.shop, items=[(self.product, 1)])
        TestDataFactory.create_sale(self.admin, self.shop, items=[(self.product, 1)])
        self.client.authenticate_user(self.seller)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['today']['sale_count'], 1)
        self.assertNotIn('staff', response.data)

    def test_super_admin_needs_shop(self):
        self.client.authenticate_user(TestDataFactory.create_super_admin())
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get(f'/api/v1/reports/dashboard/?shop={self.shop.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class AnalyticsTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_platform_analytics(self):
        plan = TestDataFactory.create_pricing_plan(price=Decimal('20.00'))
        shop = TestDataFactory.create_shop(pricing_plan=plan)
        TestDataFactory.create_shop(pricing_plan=plan)
        product = TestDataFactory.create_product(shop, price=Decimal('5.00'))
        TestDataFactory.create_sale(shop.owner, shop, items=[(product, 2)])

        self.client.authenticate_user(TestDataFactory.create_super_admin())
        response = self.client.get('/api/v1/reports/analytics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shops']['total'], 2)
        self.assertEqual(response.data['monthly_recurring_revenue'], '40.00')
        self.assertEqual(response.data['top_shops'][0]['id'], shop.id)
        self.assertEqual(response.data['sales']['revenue'], '11.00')

    def test_shop_admin_forbidden(self):
        admin = TestDataFactory.create_user()
        TestDataFactory.create_shop(owner=admin)
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/reports/analytics/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class RepairsDashboardTests(TestCase):

    def test_repair_man_sees_assigned_repairs(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        repair_man = TestDataFactory.create_user(role=User.ROLE_REPAIR_MAN, shop=shop)
        TestDataFactory.create_repair(shop, repairman=repair_man, status='work_in_progress')
        TestDataFactory.create_repair(shop, repairman=repair_man, status='done')
        TestDataFactory.create_repair(shop)

        client = AuthenticatedAPIClient().authenticate_user(repair_man)
        response = client.get('/api/v1/reports/repairs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['by_status']['done'], 1)
        self.assertEqual(response.data['by_status']['received'], 0)

        client.authenticate_user(admin)
        response = client.get('/api/v1/reports/repairs/')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['unassigned'], 1)


class SalesSummaryTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_sales_summary(self):
        cable = TestDataFactory.create_product(self.shop, name='Cable', price=Decimal('5.00'))
        case = TestDataFactory.create_product(self.shop, name='Case', price=Decimal('15.00'))
        TestDataFactory.create_sale(self.admin, self.shop, items=[(cable, 3), (case, 1)])
        TestDataFactory.create_sale(self.admin, self.shop, items=[(case, 2)])

        response = self.client.get('/api/v1/reports/sales-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['sale_count'], 2)
        self.assertEqual(response.data['summary']['items_sold'], 6)
        self.assertEqual(response.data['summary']['revenue'], '66.00')
        self.assertEqual(len(response.data['daily_breakdown']), 1)
        self.assertEqual(response.data['top_products'][0]['name'], 'Case')
        self.assertEqual(response.data['top_products'][0]['quantity'], 3)

    def test_date_range(self):
        response = self.client.get('/api/v1/reports/sales-summary/?date_from=2024-01-01&date_to=2024-12-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period'], {'from': '2024-01-01', 'to': '2024-12-31'})
        self.assertEqual(response.data['summary']['sale_count'], 0)

    def test_invalid_date(self):
        response = self.client.get('/api/v1/reports/sales-summary/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class WholesalerDashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.shop = TestDataFactory.create_shop()
        self.wholesaler = TestDataFactory.create_user(role=User.ROLE_WHOLESALER, shop=self.shop)
        for price, stock, discount in (('250', 500, '10'), ('400', 1000, '0'), ('600', 2000, '15'), ('750', 300, '20')):
            TestDataFactory.create_product(self.shop, price=Decimal(price), stock=stock,
                                           discount_percent=Decimal(discount))
        TestDataFactory.create_product(self.shop, price=Decimal('100'), stock=50,
                                       discount_percent=Decimal('50'), is_active=False)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.wholesaler)

    def test_catalog_kpis(self):
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['active_products'], 4)
        self.assertEqual(response.data['total_stock'], 3800)
        self.assertEqual(response.data['stock_value'], '1950000.00')
        self.assertEqual(response.data['discounted_products'], 3)
        self.assertEqual(response.data['average_discount'], '15.00')

    def test_cached_until_catalog_changes(self):
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response['X-Cache'], 'MISS')
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response['X-Cache'], 'HIT')
        invalidate_dashboard_cache(self.shop.pk)
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response['X-Cache'], 'MISS')

    def test_empty_catalog(self):
        other_shop = TestDataFactory.create_shop()
        self.client.authenticate_user(TestDataFactory.create_user(role=User.ROLE_WHOLESALER, shop=other_shop))
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response.data['active_products'], 0)
        self.assertEqual(response.data['stock_value'], '0.00')
        self.assertEqual(response.data['average_discount'], '0.00')

    def test_other_roles_forbidden(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        response = self.client.get('/api/v1/reports/wholesaler/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
