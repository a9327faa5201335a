"""
Test suite for clients and providers
"""
from django.test import TestCase
from rest_framework import status
from shopdesk.core.models import User
from shopdesk.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopdesk.parties.models import Client


class ClientAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.seller)

    def test_create_client(self):
        response = self.client.post('/api/v1/clients/', {
            'name': 'Marta Ruiz', 'id_number': '12345678Z', 'phone': '611222333', 'payment_method': 'card',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shop'], self.shop.id)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['sale_count'], 0)

    def test_blank_name_rejected(self):
        response = self.client.post('/api/v1/clients/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_clients(self):
        TestDataFactory.create_client(self.shop, name='Marta Ruiz')
        TestDataFactory.create_client(self.shop, name='Pedro Gil')
        TestDataFactory.create_client(TestDataFactory.create_shop(), name='Marta Other')
        response = self.client.get('/api/v1/clients/?name=marta')
        self.assertEqual(response.data['count'], 1)

    def test_sales_person_cannot_delete(self):
        client = TestDataFactory.create_client(self.shop)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_client_with_sales_deactivates(self):
        client = TestDataFactory.create_client(self.shop)
        product = TestDataFactory.create_product(self.shop)
        TestDataFactory.create_sale(self.seller, self.shop, items=[(product, 1)], client=client)
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        client.refresh_from_db()
        self.assertEqual(client.status, 'inactive')

    def test_delete_client_without_sales(self):
        client = TestDataFactory.create_client(self.shop)
        self.client.authenticate_user(self.admin)
        self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertFalse(Client.objects.filter(pk=client.id).exists())


class ProviderAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.shop = TestDataFactory.create_shop(owner=self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_create_and_list(self):
        response = self.client.post('/api/v1/providers/', {
            'name': 'Distribuciones Norte', 'document': 'B12345678', 'contact_person': 'Luis',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/providers/')
        self.assertEqual(response.data['count'], 1)

    def test_sales_person_forbidden(self):
        seller = TestDataFactory.create_user(role=User.ROLE_SALES_PERSON, shop=self.shop)
        self.client.authenticate_user(seller)
        response = self.client.get('/api/v1/providers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
