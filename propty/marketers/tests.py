"""
Test suite for the marketers module
Tests: commission calculation, marketer CRUD, project overrides, commission approval and payment
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.marketers.commissions import calculate_commission, get_commission_terms
from propty.marketers.models import Marketer, ProjectCommission, Commission


class CommissionCalculationTests(TestCase):
    """Test commission terms and amounts"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.project = TestDataFactory.create_project(self.company)

    def test_percentage_commission(self):
        marketer = TestDataFactory.create_marketer(self.company, commission_rate=Decimal('2.50'))
        self.assertEqual(calculate_commission(marketer, self.project, Decimal('3000000.00')), Decimal('75000.00'))

    def test_percentage_rounds_half_up(self):
        marketer = TestDataFactory.create_marketer(self.company, commission_rate=Decimal('1.25'))
        self.assertEqual(calculate_commission(marketer, self.project, Decimal('10.00')), Decimal('0.13'))

    def test_fixed_commission(self):
        marketer = TestDataFactory.create_marketer(self.company, commission_type='fixed',
                                                   commission_rate=Decimal('50000.00'))
        self.assertEqual(calculate_commission(marketer, self.project, Decimal('9000000.00')), Decimal('50000.00'))

    def test_project_override_wins(self):
        marketer = TestDataFactory.create_marketer(self.company, commission_rate=Decimal('5.00'))
        ProjectCommission.objects.create(marketer=marketer, project=self.project, commission_type='fixed',
                                         rate=Decimal('20000.00'))
        self.assertEqual(get_commission_terms(marketer, self.project), ('fixed', Decimal('20000.00')))
        other_project = TestDataFactory.create_project(self.company)
        self.assertEqual(calculate_commission(marketer, other_project, Decimal('100000.00')), Decimal('5000.00'))


class MarketerAPITests(TestCase):
    """Test marketer endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_marketer(self):
        data = {'first_name': 'Kemi', 'last_name': 'Ade', 'commission_type': 'percentage', 'commission_rate': '3.00'}
        response = self.client.post('/api/v1/marketers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Marketer.objects.get(pk=response.data['id']).company, self.company)

    def test_percentage_over_100_rejected(self):
        data = {'first_name': 'Kemi', 'last_name': 'Ade', 'commission_type': 'percentage', 'commission_rate': '150'}
        response = self.client.post('/api/v1/marketers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('commission_rate', response.data)

    def test_negative_rate_rejected(self):
        data = {'first_name': 'Kemi', 'last_name': 'Ade', 'commission_type': 'fixed', 'commission_rate': '-1'}
        response = self.client.post('/api/v1/marketers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_marketer(self.company, first_name='Bola')
        inactive = TestDataFactory.create_marketer(self.company, first_name='Sade')
        inactive.status = 'inactive'
        inactive.save()
        TestDataFactory.create_marketer(TestDataFactory.create_company(), first_name='Bola')

        response = self.client.get('/api/v1/marketers/?search=bola')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/marketers/?status=inactive')
        self.assertEqual([m['first_name'] for m in response.data], ['Sade'])

    def test_detail_includes_sales_data(self):
        marketer = TestDataFactory.create_marketer(self.company)
        unit = TestDataFactory.create_unit(TestDataFactory.create_project(self.company), price=Decimal('2000000.00'))
        TestDataFactory.create_sale(self.user, TestDataFactory.create_client(self.company), unit, marketer=marketer)

        response = self.client.get(f'/api/v1/marketers/{marketer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sales_data']['total_sales'], 1)
        self.assertEqual(response.data['sales_data']['total_amount'], Decimal('2000000.00'))

    def test_project_override_endpoint(self):
        marketer = TestDataFactory.create_marketer(self.company)
        project = TestDataFactory.create_project(self.company)
        url = f'/api/v1/marketers/{marketer.id}/project-commissions/'

        response = self.client.post(url, {'project': project.id, 'commission_type': 'fixed', 'rate': '10000.00'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, {'project': project.id, 'commission_type': 'fixed', 'rate': '5.00'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)

    def test_project_override_other_company_rejected(self):
        marketer = TestDataFactory.create_marketer(self.company)
        foreign_project = TestDataFactory.create_project(TestDataFactory.create_company())
        response = self.client.post(f'/api/v1/marketers/{marketer.id}/project-commissions/',
                                    {'project': foreign_project.id, 'rate': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CommissionWorkflowTests(TestCase):
    """Test commission approval and payment"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.accountant = TestDataFactory.create_user(company=self.company, groups=['Accountant'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.accountant)
        self.marketer = TestDataFactory.create_marketer(self.company)
        unit = TestDataFactory.create_unit(TestDataFactory.create_project(self.company))
        sale = TestDataFactory.create_sale(self.accountant, TestDataFactory.create_client(self.company), unit,
                                           marketer=self.marketer)
        self.commission = Commission.objects.create(
            company=self.company, marketer=self.marketer, sale=sale, client=sale.client, project=sale.project,
            unit=unit, amount=Decimal('50000.00')
        )

    def test_approve_then_pay(self):
        response = self.client.post(f'/api/v1/commissions/{self.commission.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')

        response = self.client.post(f'/api/v1/commissions/{self.commission.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.commission.refresh_from_db()
        self.assertEqual(self.commission.status, 'paid')
        self.assertIsNotNone(self.commission.paid_at)

    def test_pay_before_approval_conflicts(self):
        response = self.client.post(f'/api/v1/commissions/{self.commission.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_sales_user_cannot_approve(self):
        sales = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(sales)
        response = client.post(f'/api/v1/commissions/{self.commission.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_totals(self):
        response = self.client.get('/api/v1/commissions/?status=pending')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['totals']['pending']['total'], Decimal('50000.00'))

    def test_delete_marketer_with_unpaid_commission_conflicts(self):
        response = self.client.delete(f'/api/v1/marketers/{self.marketer.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_marketer_commissions(self):
        response = self.client.get(f'/api/v1/marketers/{self.marketer.id}/commissions/')
        self.assertEqual(len(response.data), 1)
