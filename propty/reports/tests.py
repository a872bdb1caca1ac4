"""
Test suite for the reports module
Tests: report access, sales/allocations/commissions/clients/projects reports, CSV exports, dashboard KPIs
"""
import csv
import io
from datetime import date, timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from propty.core.cache_utils import get_report_cache_key, invalidate_dashboard_cache
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.marketers.models import Commission


class ReportTestCase(TestCase):
    """Company with one project, two clients, a sale, an allocation and payments"""

    def setUp(self):
        cache.clear()
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Accountant'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

        self.project = TestDataFactory.create_project(self.company, name='Palm Estate', location='Ajah')
        self.reserved_unit = TestDataFactory.create_unit(self.project, price=Decimal('1000000.00'))
        self.allocated_unit = TestDataFactory.create_unit(self.project, price=Decimal('3000000.00'))
        TestDataFactory.create_unit(self.project)
        TestDataFactory.create_unit(self.project)

        self.ada = TestDataFactory.create_client(self.company, first_name='Ada')
        self.ben = TestDataFactory.create_client(self.company, first_name='Ben', status='lead')
        self.marketer = TestDataFactory.create_marketer(self.company, first_name='Kola')

        self.sale = TestDataFactory.create_sale(self.user, self.ada, self.reserved_unit, marketer=self.marketer)
        allocated_sale = TestDataFactory.create_sale(self.user, self.ada, self.allocated_unit,
                                                     sales_type='offer_allocation')
        TestDataFactory.create_allocation(self.user, self.ada, self.allocated_unit, sale=allocated_sale)
        TestDataFactory.create_payment(self.ada, amount=Decimal('700000.00'), unit=self.allocated_unit)
        TestDataFactory.create_payment(self.ada, amount=Decimal('50000.00'), unit=self.allocated_unit,
                                       payment_type='refund')
        Commission.objects.create(company=self.company, marketer=self.marketer, sale=self.sale,
                                  amount=Decimal('50000.00'))

        # Another company's data never shows up
        other = TestDataFactory.create_company()
        other_unit = TestDataFactory.create_unit(TestDataFactory.create_project(other))
        other_client = TestDataFactory.create_client(other)
        TestDataFactory.create_sale(self.user, other_client, other_unit)
        TestDataFactory.create_payment(other_client, amount=Decimal('999.00'), unit=other_unit)


class ReportAccessTests(ReportTestCase):

    def test_sales_role_forbidden(self):
        sales = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(sales)
        response = client.get('/api/v1/reports/sales/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.get('/api/v1/reports/sales/export/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard_open_to_sales_role(self):
        sales = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(sales)
        response = client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_invalid_date_rejected(self):
        response = self.client.get('/api/v1/reports/sales/?date_from=19-10-2026')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reversed_range_rejected(self):
        response = self.client.get('/api/v1/reports/sales/?date_from=2026-02-01&date_to=2026-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ReportContentTests(ReportTestCase):

    def test_sales_report(self):
        response = self.client.get('/api/v1/reports/sales/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['sales_count'], 2)
        self.assertEqual(response.data['summary']['total_sales'], 4000000.0)
        self.assertEqual(response.data['summary']['average_sale'], 2000000.0)
        self.assertEqual(response.data['by_project'][0]['project_name'], 'Palm Estate')
        self.assertEqual(response.data['by_sales_type'], {'offer_only': 1, 'offer_allocation': 1})
        self.assertEqual(response.data['monthly_breakdown'][0]['month'], timezone.localdate().strftime('%Y-%m'))
        self.assertNotIn('rows', response.data)
        self.assertIn('period', response.data)

    def test_sales_report_outside_range_is_empty(self):
        start = (timezone.localdate() - timedelta(days=400)).isoformat()
        end = (timezone.localdate() - timedelta(days=300)).isoformat()
        response = self.client.get(f'/api/v1/reports/sales/?date_from={start}&date_to={end}')
        self.assertEqual(response.data['summary']['sales_count'], 0)
        self.assertEqual(response.data['summary']['total_sales'], 0.0)

    def test_sales_report_cached_until_commit(self):
        response = self.client.get('/api/v1/reports/sales/')
        self.assertEqual(response.data['summary']['sales_count'], 2)

        unit = TestDataFactory.create_unit(self.project)
        with self.captureOnCommitCallbacks(execute=False):
            TestDataFactory.create_sale(self.user, self.ben, unit)
        response = self.client.get('/api/v1/reports/sales/')
        self.assertEqual(response.data['summary']['sales_count'], 2)

        unit = TestDataFactory.create_unit(self.project)
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_sale(self.user, self.ben, unit)
        response = self.client.get('/api/v1/reports/sales/')
        self.assertEqual(response.data['summary']['sales_count'], 4)

    def test_invalidation_is_per_company(self):
        self.client.get('/api/v1/reports/sales/?date_from=2026-01-01&date_to=2026-01-31')
        cache_key = get_report_cache_key(self.company.id, 'sales', date(2026, 1, 1), date(2026, 1, 31))
        self.assertIsNotNone(cache.get(cache_key))

        invalidate_dashboard_cache(TestDataFactory.create_company().id)
        self.assertIsNotNone(cache.get(cache_key))

        invalidate_dashboard_cache(self.company.id)
        cache_key = get_report_cache_key(self.company.id, 'sales', date(2026, 1, 1), date(2026, 1, 31))
        self.assertIsNone(cache.get(cache_key))

    def test_allocations_report(self):
        response = self.client.get('/api/v1/reports/allocations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['allocations_by_status']['active'], 1)
        self.assertEqual(response.data['total_allocations'], 1)
        self.assertEqual(response.data['requests_by_type']['revocation']['pending'], 0)

    def test_commissions_report(self):
        response = self.client.get('/api/v1/reports/commissions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['pending'], 50000.0)
        self.assertEqual(response.data['marketers'][0]['marketer_name'], 'Kola Agent')

    def test_clients_report(self):
        response = self.client.get('/api/v1/reports/clients/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_clients'], 2)
        self.assertEqual(response.data['by_status']['lead'], 1)
        top = response.data['top_clients']
        self.assertEqual(len(top), 1)
        self.assertEqual(top[0]['client_id'], self.ada.id)
        self.assertEqual(top[0]['total_paid'], 700000.0)
        self.assertEqual(top[0]['units_count'], 2)

    def test_projects_report(self):
        response = self.client.get('/api/v1/reports/projects/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        row = response.data['projects'][0]
        self.assertEqual(row['total_units'], 4)
        self.assertEqual(row['units_by_status']['allocated'], 1)
        self.assertEqual(row['units_by_status']['reserved'], 1)
        self.assertEqual(row['allocation_rate'], 25.0)
        self.assertEqual(row['revenue'], 700000.0)


class ReportExportTests(ReportTestCase):

    def _rows(self, response):
        return list(csv.reader(io.StringIO(response.content.decode('utf-8'))))

    def test_sales_export(self):
        response = self.client.get('/api/v1/reports/sales/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv')
        self.assertIn('attachment; filename="sales-', response['Content-Disposition'])
        rows = self._rows(response)
        self.assertEqual(rows[0][0], 'Sale Number')
        self.assertEqual(len(rows), 3)

    def test_projects_export(self):
        response = self.client.get('/api/v1/reports/projects/export/')
        rows = self._rows(response)
        self.assertEqual(rows[0][:2], ['Project', 'Location'])
        self.assertEqual(rows[1][:2], ['Palm Estate', 'Ajah'])
        self.assertEqual(rows[1][-1], '700000.00')

    def test_clients_export(self):
        rows = self._rows(self.client.get('/api/v1/reports/clients/export/'))
        self.assertEqual(rows[0][0], 'Client')
        self.assertEqual(rows[1][0], 'Ada Tester')

    def test_commissions_export(self):
        rows = self._rows(self.client.get('/api/v1/reports/commissions/export/'))
        self.assertEqual(rows[0][:2], ['Marketer', 'Total'])
        self.assertEqual(rows[1][1], '50000.00')

    def test_unknown_export(self):
        response = self.client.get('/api/v1/reports/allocations/export/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DashboardKPITests(ReportTestCase):

    def test_dashboard_kpis(self):
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_clients'], 2)
        self.assertEqual(response.data['total_projects'], 1)
        self.assertEqual(response.data['total_units'], 4)
        self.assertEqual(response.data['allocation_rate'], 25.0)
        self.assertEqual(response.data['total_revenue'], 700000.0)
        self.assertEqual(response.data['total_sales_value'], 4000000.0)
        self.assertEqual(response.data['sales_this_month'], 2)
        self.assertEqual(response.data['pending_approvals'], 0)
        self.assertEqual(response.data['active_allocations'], 1)
        self.assertEqual(response.data['pending_commissions'], 50000.0)

    def test_dashboard_kpis_cached(self):
        self.client.get('/api/v1/reports/dashboard-kpis/')
        TestDataFactory.create_client(self.company)
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.data['total_clients'], 2)

        cache.clear()
        response = self.client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.data['total_clients'], 3)
