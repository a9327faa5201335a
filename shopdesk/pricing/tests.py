"""
Test suite for pricing plans
"""
from django.test import TestCase
from rest_framework import status
from shopdesk.core.models import ActivityLog
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.pricing.models import PricingPlan


class PricingPlanAPITests(TestCase):

    def setUp(self):
        self.super_admin = TestDataFactory.create_super_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.super_admin)

    def test_create_plan(self):
        response = self.client.post('/api/v1/pricing-plans/', {
            'name': 'Gold', 'price': '49.00', 'max_staff': 5, 'max_products': 1000,
            'features': ['POS', ' Repairs ', ''],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['features'], ['POS', 'Repairs'])

    def test_features_must_be_strings(self):
        response = self.client.post('/api/v1/pricing-plans/', {'name': 'Bad', 'features': [1, 2]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_shop_admin_sees_active_plans_only(self):
        TestDataFactory.create_pricing_plan(name='Silver')
        retired = TestDataFactory.create_pricing_plan(name='Legacy')
        retired.is_active = False
        retired.save()
        admin = TestDataFactory.create_user()
        TestDataFactory.create_shop(owner=admin)
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/pricing-plans/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.post('/api/v1/pricing-plans/', {'name': 'Mine'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_price_change_logged(self):
        plan = TestDataFactory.create_pricing_plan(name='Gold')
        response = self.client.patch(f'/api/v1/pricing-plans/{plan.id}/', {'price': '59.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(ActivityLog.objects.filter(action='price_change', model_name='PricingPlan').exists())

    def test_plan_in_use_cannot_be_deleted(self):
        plan = TestDataFactory.create_pricing_plan()
        TestDataFactory.create_shop(pricing_plan=plan)
        response = self.client.delete(f'/api/v1/pricing-plans/{plan.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(PricingPlan.objects.filter(pk=plan.id).exists())

    def test_delete_unused_plan(self):
        plan = TestDataFactory.create_pricing_plan()
        response = self.client.delete(f'/api/v1/pricing-plans/{plan.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
