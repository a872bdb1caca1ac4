"""
Test suite for the clients module
Tests: client CRUD and filters, payments, financial summary, allocations and notices of a client
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from propty.core.models import AuditLog
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.clients.models import Client, ClientPayment
from propty.notices.models import Notice, NoticeDelivery
from propty.sales.models import AllocationHistory


class ClientAPITests(TestCase):
    """Test client endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_client(self):
        data = {
            'first_name': 'Chidi',
            'last_name': 'Okafor',
            'email': 'chidi@example.com',
            'phone': '08031234567',
            'referral_source': 'walk-in',
        }
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['full_name'], 'Chidi Okafor')
        client = Client.objects.get(pk=response.data['id'])
        self.assertEqual(client.company, self.company)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Client', object_id=str(client.id)).exists())

    def test_create_client_requires_company(self):
        loner = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(loner)
        response = client.post('/api/v1/clients/', {'first_name': 'A', 'last_name': 'B', 'email': 'a@b.com',
                                                     'phone': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_marketer_of_other_company_rejected(self):
        foreign_marketer = TestDataFactory.create_marketer(TestDataFactory.create_company())
        data = {'first_name': 'Ngozi', 'last_name': 'Eze', 'email': 'ngozi@example.com', 'phone': '0802',
                'assigned_marketer': foreign_marketer.id}
        response = self.client.post('/api/v1/clients/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('assigned_marketer', response.data)

    def test_list_search_and_status(self):
        TestDataFactory.create_client(self.company, first_name='Amaka', last_name='Obi')
        TestDataFactory.create_client(self.company, first_name='Tunde', last_name='Bello', status='lead')
        TestDataFactory.create_client(TestDataFactory.create_company(), first_name='Amaka', last_name='Other')

        response = self.client.get('/api/v1/clients/', {'search': 'amaka obi'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['full_name'] for c in response.data], ['Amaka Obi'])

        response = self.client.get('/api/v1/clients/?status=lead')
        self.assertEqual([c['full_name'] for c in response.data], ['Tunde Bello'])

    def test_units_count_in_list(self):
        client = TestDataFactory.create_client(self.company)
        project = TestDataFactory.create_project(self.company)
        TestDataFactory.create_unit(project, status='allocated', client=client)
        response = self.client.get('/api/v1/clients/')
        self.assertEqual(response.data[0]['units_count'], 1)

    def test_delete_client_with_sales_conflicts(self):
        client = TestDataFactory.create_client(self.company)
        unit = TestDataFactory.create_unit(TestDataFactory.create_project(self.company))
        TestDataFactory.create_sale(self.user, client, unit)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_delete_client(self):
        client = TestDataFactory.create_client(self.company)
        response = self.client.delete(f'/api/v1/clients/{client.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Client.objects.filter(pk=client.id).exists())


class ClientPaymentTests(TestCase):
    """Test client payments"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Accountant'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.buyer = TestDataFactory.create_client(self.company)
        self.project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(self.project)

    def test_record_completed_payment_adds_timeline_event(self):
        data = {'amount': '500000.00', 'unit': self.unit.id, 'payment_type': 'instalment', 'status': 'completed'}
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['project'], self.project.id)
        self.assertIsNotNone(response.data['paid_date'])

        event = AllocationHistory.objects.get(unit=self.unit)
        self.assertEqual(event.event, 'payment_received')
        self.assertEqual(event.amount, Decimal('500000.00'))

    def test_pending_payment_has_no_timeline_event(self):
        data = {'amount': '500000.00', 'unit': self.unit.id, 'status': 'pending'}
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(AllocationHistory.objects.filter(unit=self.unit).exists())

    def test_non_positive_amount_rejected(self):
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/', {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unit_of_other_company_rejected(self):
        foreign_unit = TestDataFactory.create_unit(TestDataFactory.create_project(TestDataFactory.create_company()))
        data = {'amount': '100.00', 'unit': foreign_unit.id}
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('unit', response.data)

    def test_mark_paid(self):
        payment = TestDataFactory.create_payment(self.buyer, unit=self.unit, status='pending')
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/{payment.id}/mark-paid/',
                                    {'reference': 'TRX-9'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'completed')
        self.assertEqual(payment.reference, 'TRX-9')

    def test_mark_paid_twice_rejected(self):
        payment = TestDataFactory.create_payment(self.buyer, unit=self.unit, status='completed')
        response = self.client.post(f'/api/v1/clients/{self.buyer.id}/payments/{payment.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_payments_by_status(self):
        TestDataFactory.create_payment(self.buyer, status='pending')
        TestDataFactory.create_payment(self.buyer, status='completed')
        response = self.client.get(f'/api/v1/clients/{self.buyer.id}/payments/?status=pending')
        self.assertEqual(len(response.data), 1)


class ClientSummaryTests(TestCase):
    """Test the client financial summary"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.buyer = TestDataFactory.create_client(self.company)
        project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(project, price=Decimal('1000000.00'))

    def test_summary_totals(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('300000.00'), unit=self.unit, sale=sale)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('50000.00'), payment_type='refund', status='pending')

        response = self.client.get(f'/api/v1/clients/{self.buyer.id}/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_paid'], Decimal('300000.00'))
        self.assertEqual(response.data['pending_refunds'], Decimal('50000.00'))
        self.assertEqual(response.data['total_sale_value'], Decimal('1000000.00'))
        self.assertEqual(response.data['outstanding_balance'], Decimal('700000.00'))
        self.assertEqual(response.data['sales_count'], 1)
        self.assertEqual(response.data['allocation_count'], 0)

    def test_client_allocations(self):
        TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        response = self.client.get(f'/api/v1/clients/{self.buyer.id}/allocations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['unit'], self.unit.id)

    def test_client_notices(self):
        notice = Notice.objects.create(company=self.company, title='Site visit', message='Saturday 10am',
                                       channels=['in_app'], status='sent')
        NoticeDelivery.objects.create(notice=notice, client=self.buyer, channel='in_app', status='delivered')
        response = self.client.get(f'/api/v1/clients/{self.buyer.id}/notices/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['title'], 'Site visit')
        self.assertEqual(ClientPayment.objects.count(), 0)
