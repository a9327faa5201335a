"""
Test suite for shops and subscriptions
"""
from django.test import TestCase
from rest_framework import status
from shopdesk.core.models import ActivityLog, Notification, User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ShopAPITests(TestCase):

    def setUp(self):
        self.super_admin = TestDataFactory.create_super_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.super_admin)

    def test_create_shop_assigns_owner(self):
        owner = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON)
        response = self.client.post('/api/v1/shops/', {'name': 'Fix & Go', 'owner': owner.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subscription_tier'], 'silver')
        self.assertEqual(response.data['tax_rate'], '0.1000')
        owner.refresh_from_db()
        self.assertEqual(owner.shop_id, response.data['id'])
        self.assertEqual(owner.role, User.ROLE_ADMIN)
        self.assertTrue(Notification.objects.filter(user=owner, title='Shop created').exists())

    def test_tax_rate_must_be_fraction(self):
        owner = TestDataFactory.create_user()
        response = self.client.post('/api/v1/shops/', {'name': 'Bad', 'owner': owner.id, 'tax_rate': '21'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_shop_admin_sees_own_shop(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        TestDataFactory.create_shop()
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/shops/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], shop.id)
        response = self.client.post('/api/v1/shops/', {'name': 'Second', 'owner': admin.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_cannot_change_own_tier(self):
        admin = TestDataFactory.create_user()
        shop = TestDataFactory.create_shop(owner=admin)
        self.client.authenticate_user(admin)
        response = self.client.patch(f'/api/v1/shops/{shop.id}/', {'phone': '999', 'subscription_tier': 'platinum'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        shop.refresh_from_db()
        self.assertEqual(shop.phone, '999')
        self.assertEqual(shop.subscription_tier, 'silver')

    def test_close_shop(self):
        shop = TestDataFactory.create_shop()
        response = self.client.delete(f'/api/v1/shops/{shop.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        shop.refresh_from_db()
        self.assertFalse(shop.is_active)
        self.assertEqual(shop.subscription_status, 'cancelled')


class SubscribeTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_subscribe(self):
        plan = TestDataFactory.create_pricing_plan(name='Gold Growth', max_staff=5)
        response = self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pricing_plan'], plan.id)
        self.assertEqual(response.data['subscription_tier'], 'gold')
        self.assertTrue(ActivityLog.objects.filter(action='subscription_change').exists())
        self.assertTrue(Notification.objects.filter(user=self.admin, notification_type='subscription').exists())

    def test_already_subscribed(self):
        plan = TestDataFactory.create_pricing_plan()
        self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id}, format='json')
        response = self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Already subscribed')

    def test_staff_limit(self):
        TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        plan = TestDataFactory.create_pricing_plan(max_staff=1)
        response = self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Staff limit exceeded')

    def test_inactive_plan(self):
        plan = TestDataFactory.create_pricing_plan()
        plan.is_active = False
        plan.save()
        response = self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_person_cannot_subscribe(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        plan = TestDataFactory.create_pricing_plan()
        response = self.client.post(f'/api/v1/shops/{self.shop.id}/subscribe/', {'pricing_plan': plan.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
