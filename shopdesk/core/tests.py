"""
Test suite for core
Tests: table filtering and pagination, shop context, auth, staff, notifications, feature flags
"""
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from shopdesk.core.context import ShopContext
from shopdesk.core.models import ActivityLog, FeatureFlag, Notification, User
from shopdesk.core.tables import Column, Table, TableState, FILTER_SELECT, FILTER_TEXT, default_page_size
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.core.utils import create_activity_log


def make_rows(count):
    return [
        {'id': index, 'name': f'Item {index}', 'status': 'active' if index % 2 else 'inactive',
         'owner': {'name': 'Ana' if index % 3 else 'Luis'}}
        for index in range(1, count + 1)
    ]


class TableTests(SimpleTestCase):
    """Test filtering and pagination over in-memory rows"""

    def setUp(self):
        self.table = Table([
            Column('name', filter_type=FILTER_TEXT),
            Column('status', filter_type=FILTER_SELECT, options=['active', 'inactive']),
            Column('owner.name', label='Owner', filter_type=FILTER_TEXT),
            Column('id'),
        ])

    def test_pagination_partial_last_page(self):
        page = self.table.paginate(make_rows(42), page=5, page_size=10)
        self.assertEqual(len(page), 2)
        self.assertEqual(page.total_pages, 5)
        self.assertEqual(page.total_count, 42)
        self.assertEqual(page.start_index, 41)
        self.assertEqual(page.end_index, 42)
        self.assertFalse(page.has_next)
        self.assertTrue(page.has_previous)

    def test_pagination_clamps_out_of_range(self):
        page = self.table.paginate(make_rows(42), page=9, page_size=10)
        self.assertEqual(page.page, 5)
        page = self.table.paginate(make_rows(42), page=0, page_size=10)
        self.assertEqual(page.page, 1)

    def test_pagination_empty(self):
        page = self.table.paginate([], page=1, page_size=10)
        self.assertEqual(page.total_pages, 0)
        self.assertEqual(page.start_index, 0)
        self.assertEqual(len(page), 0)

    def test_text_filter_is_case_insensitive_substring(self):
        rows = self.table.filter(make_rows(12), {'name': 'ITEM 1'})
        self.assertEqual([row['id'] for row in rows], [1, 10, 11, 12])

    def test_select_filter_is_exact(self):
        rows = self.table.filter(make_rows(6), {'status': 'active'})
        self.assertEqual([row['id'] for row in rows], [1, 3, 5])

    def test_nested_key_and_combined_filters(self):
        rows = self.table.filter(make_rows(12), {'owner.name': 'luis', 'status': 'inactive'})
        self.assertEqual([row['id'] for row in rows], [6, 12])

    def test_empty_unknown_and_display_only_filters_ignored(self):
        rows = make_rows(5)
        self.assertEqual(self.table.filter(rows, {'name': '', 'missing': 'x', 'id': '3'}), rows)

    def test_accessor(self):
        table = Table([Column('label', filter_type=FILTER_TEXT, accessor=lambda row: row['name'].upper())])
        rows = table.filter(make_rows(3), {'label': 'item 2'})
        self.assertEqual(len(rows), 1)

    def test_invalid_column(self):
        with self.assertRaises(ValueError):
            Column('name', filter_type='fuzzy')
        with self.assertRaises(ValueError):
            Table([Column('name'), Column('name')])

    def test_state_resets_page(self):
        state = TableState(page=4, page_size=10)
        self.assertEqual(state.page, 4)
        state.set_filter('name', 'item')
        self.assertEqual(state.page, 1)
        state.set_page(3)
        state.set_page_size(25)
        self.assertEqual(state.page, 1)
        self.assertEqual(state.page_size, 25)
        state.set_page(2)
        state.clear_filters()
        self.assertEqual(state.page, 1)
        self.assertEqual(state.filters, {})

    def test_state_rejects_bad_page_size(self):
        with self.assertRaises(ValueError):
            TableState(page_size=0)
        with self.assertRaises(ValueError):
            TableState(page_size=3)
        state = TableState(page_size=50)
        with self.assertRaises(ValueError):
            state.set_page_size(20)
        self.assertEqual(state.page_size, 50)
        with self.assertRaises(ValueError):
            Table([Column('name')], page_size=7)

    def test_query_params_page_size_outside_options_uses_default(self):
        for raw in ('7', '500', '0', 'abc'):
            state = TableState.from_query_params({'page_size': raw}, self.table)
            self.assertEqual(state.page_size, 10)
        state = TableState.from_query_params({'page_size': '50'}, self.table)
        self.assertEqual(state.page_size, 50)

    @override_settings(SHOPDESK_PAGE_SIZE=25)
    def test_default_page_size_from_settings(self):
        self.assertEqual(default_page_size(), 25)
        self.assertEqual(TableState().page_size, 25)
        self.assertEqual(Table([Column('name')]).page_size, 25)

    @override_settings(SHOPDESK_PAGE_SIZE=15)
    def test_default_page_size_outside_options(self):
        self.assertEqual(default_page_size(), 10)

    def test_run_with_state(self):
        state = TableState(page=2, page_size=10, filters={'status': 'active'})
        page = self.table.run(make_rows(50), state)
        self.assertEqual([row['id'] for row in page], list(range(21, 40, 2)))
        self.assertEqual(page.total_pages, 3)

    def test_from_query_params(self):
        state = TableState.from_query_params({'page': '3', 'limit': '25', 'name': 'x', 'id': '1'}, self.table)
        self.assertEqual(state.page, 3)
        self.assertEqual(state.page_size, 25)
        self.assertEqual(state.filters, {'name': 'x'})

    def test_as_dict(self):
        page = self.table.paginate(make_rows(42), page=2, page_size=10)
        data = page.as_dict(['row'])
        self.assertEqual(data['next'], 3)
        self.assertEqual(data['previous'], 1)
        self.assertEqual(data['count'], 42)


class ShopContextTests(TestCase):

    def test_scope(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        TestDataFactory.create_product(shop)
        TestDataFactory.create_product(TestDataFactory.create_shop())
        from shopdesk.catalog.models import Product

        self.assertEqual(ShopContext(admin, shop=shop).scope(Product.objects.all()).count(), 1)
        self.assertEqual(ShopContext(TestDataFactory.create_super_admin()).scope(Product.objects.all()).count(), 2)
        lost = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON)
        self.assertEqual(ShopContext(lost).scope(Product.objects.all()).count(), 0)

    def test_tax_rate_defaults(self):
        admin = TestDataFactory.create_user()
        ctx = ShopContext(admin)
        self.assertEqual(str(ctx.tax_rate), '0.10')

    def test_activity_log_uses_context(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        ctx = ShopContext(admin, shop=shop, ip_address='10.0.0.1')
        log = create_activity_log(ctx=ctx, action='update', model_name='Shop', object_id=shop.id)
        self.assertEqual(log.user, admin)
        self.assertEqual(log.shop, shop)
        self.assertEqual(log.ip_address, '10.0.0.1')
        self.assertIsNone(create_activity_log(ctx=ctx, action='update', model_name='Shop'))


class AuthTests(TestCase):

    def test_login_returns_user(self):
        admin = TestDataFactory.create_user(username='owner1', password='Secret-pass-42')
        TestDataFactory.create_shop(owner=admin)
        client = AuthenticatedAPIClient()
        response = client.post('/api/v1/auth/login/', {'username': 'owner1', 'password': 'Secret-pass-42'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_ADMIN)

    def test_me_lists_enabled_features(self):
        admin = TestDataFactory.create_user()
        TestDataFactory.create_shop(owner=admin, subscription_tier='gold')
        FeatureFlag.objects.create(name='repairs', is_enabled=True)
        FeatureFlag.objects.create(name='analytics', is_enabled=True, enabled_tiers=['platinum'])
        FeatureFlag.objects.create(name='wholesale', is_enabled=False)
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['features'], ['repairs'])

    def test_anonymous_rejected(self):
        response = AuthenticatedAPIClient().get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def payload(self, **overrides):
        data = {'username': 'seller1', 'email': 'seller1@test.com', 'password': 'Strong-pass-123',
                'password_confirm': 'Strong-pass-123', 'role': User.ROLE_SALES_PERSON}
        data.update(overrides)
        return data

    def test_create_staff(self):
        response = self.client.post('/api/v1/users/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shop'], self.shop.id)

    def test_shop_admin_cannot_create_super_admin(self):
        response = self.client.post('/api/v1/users/', self.payload(role=User.ROLE_SUPER_ADMIN), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_limit(self):
        self.shop.pricing_plan = TestDataFactory.create_pricing_plan(max_staff=1)
        self.shop.save()
        response = self.client.post('/api/v1/users/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Staff limit reached')

    def test_deactivate_staff(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        response = self.client.delete(f'/api/v1/users/{seller.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        seller.refresh_from_db()
        self.assertFalse(seller.is_active)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_person_cannot_list_users(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        self.assertEqual(self.client.get('/api/v1/users/').status_code, status.HTTP_403_FORBIDDEN)

    def test_activity_logs_scoped_to_shop(self):
        create_activity_log(ctx=ShopContext(self.admin, shop=self.shop), action='create', model_name='Product',
                            object_id=1)
        other_admin = TestDataFactory.create_user()
        other_shop = TestDataFactory.create_shop(owner=other_admin)
        create_activity_log(ctx=ShopContext(other_admin, shop=other_shop), action='create', model_name='Product',
                            object_id=2)
        response = self.client.get('/api/v1/activity-logs/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(ActivityLog.objects.count(), 2)


class NotificationAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.first = Notification.objects.create(user=self.user, title='Low stock')
        Notification.objects.create(user=self.user, title='Sale')
        Notification.objects.create(user=TestDataFactory.create_user(), title='Not mine')

    def test_list_with_unread_count(self):
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['unread_count'], 2)

    def test_mark_read(self):
        response = self.client.post(f'/api/v1/notifications/{self.first.id}/mark-read/')
        self.assertTrue(response.data['is_read'])
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.data['unread_count'], 1)

    def test_mark_all_read_and_clear(self):
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 2)
        response = self.client.post('/api/v1/notifications/clear/')
        self.assertEqual(response.data['deleted'], 2)
        self.assertEqual(Notification.objects.count(), 1)


class FeatureFlagAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_super_admin())

    def test_toggle_logged(self):
        response = self.client.post('/api/v1/feature-flags/', {'name': 'repairs'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        flag_id = response.data['id']
        self.client.patch(f'/api/v1/feature-flags/{flag_id}/', {'is_enabled': True}, format='json')
        self.assertTrue(ActivityLog.objects.filter(action='feature_flag_toggle').exists())

    def test_unknown_tier(self):
        response = self.client.post('/api/v1/feature-flags/', {'name': 'x', 'enabled_tiers': ['bronze']},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_shop_admin_forbidden(self):
        admin = TestDataFactory.create_user()
        self.client.authenticate_user(admin)
        self.assertEqual(self.client.get('/api/v1/feature-flags/').status_code, status.HTTP_403_FORBIDDEN)
