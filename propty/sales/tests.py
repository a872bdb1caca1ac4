"""
Test suite for the sales module
Tests: recording sales, allocation/reallocation/revocation requests, OTP-gated approval and decline
"""
import re
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from propty.core.models import AuditLog
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient, TEST_OTP_CODE
from propty.clients.models import ClientPayment
from propty.marketers.models import Commission
from propty.projects.models import Unit
from propty.sales import services
from propty.sales.exceptions import (
    DuplicateRequest, InvalidTransition, UnitUnavailable, AllocationError, OTPInvalid, OTPLocked
)
from propty.sales.models import Sale, Allocation, AllocationRequest, AllocationOTP, AllocationHistory
from propty.sales.otp import verify_otp


def otp_from_outbox():
    """The code from the most recent OTP email"""
    return re.search(r'Code: (\d+)', mail.outbox[-1].body).group(1)


class RecordSaleTests(TestCase):
    """Test recording a sale through the service"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        self.project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(self.project, price=Decimal('2000000.00'))
        self.buyer = TestDataFactory.create_client(self.company)

    def _data(self, **overrides):
        data = {'client': self.buyer, 'project': self.project, 'unit': self.unit}
        data.update(overrides)
        return data

    def test_sale_reserves_unit(self):
        sale = services.record_sale(self.user, self._data())
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, 'reserved')
        self.assertEqual(self.unit.client, self.buyer)
        self.assertEqual(sale.sale_amount, Decimal('2000000.00'))
        self.assertTrue(sale.sale_number.startswith('SAL-'))
        self.assertFalse(sale.allocation_requests.exists())

    def test_initial_payment_recorded_as_deposit(self):
        sale = services.record_sale(self.user, self._data(initial_payment=Decimal('500000.00')))
        payment = ClientPayment.objects.get(sale=sale)
        self.assertEqual(payment.payment_type, 'deposit')
        self.assertEqual(payment.status, 'completed')
        self.assertEqual(services.total_paid_for_unit(self.buyer, self.unit), Decimal('500000.00'))
        self.assertTrue(AllocationHistory.objects.filter(unit=self.unit, event='payment_received').exists())

    def test_initial_payment_above_amount_rejected(self):
        with self.assertRaises(AllocationError):
            services.record_sale(self.user, self._data(sale_amount=Decimal('100.00'),
                                                       initial_payment=Decimal('200.00')))

    def test_marketer_earns_commission(self):
        marketer = TestDataFactory.create_marketer(self.company, commission_rate=Decimal('2.50'))
        sale = services.record_sale(self.user, self._data(marketer=marketer))
        commission = Commission.objects.get(sale=sale)
        self.assertEqual(commission.amount, Decimal('50000.00'))
        self.assertEqual(commission.status, 'pending')
        self.assertEqual(commission.rate_snapshot, Decimal('2.50'))

    def test_offer_allocation_queues_request(self):
        sale = services.record_sale(self.user, self._data(sales_type='offer_allocation'))
        request_obj = sale.allocation_requests.get()
        self.assertEqual(request_obj.request_type, AllocationRequest.TYPE_ALLOCATION)
        self.assertEqual(request_obj.status, AllocationRequest.STATUS_PENDING)
        self.assertEqual(request_obj.priority, 'medium')

    def test_instant_allocation_is_high_priority(self):
        sale = services.record_sale(self.user, self._data(sales_type='instant_allocation'))
        self.assertEqual(sale.allocation_requests.get().priority, 'high')

    def test_unavailable_unit_rejected(self):
        services.record_sale(self.user, self._data())
        other = TestDataFactory.create_client(self.company)
        with self.assertRaises(UnitUnavailable):
            services.record_sale(self.user, self._data(client=other))


class SaleAPITests(TestCase):
    """Test sale endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(self.project)
        self.buyer = TestDataFactory.create_client(self.company)

    def test_create_sale_with_allocation(self):
        data = {'client': self.buyer.id, 'project': self.project.id, 'unit': self.unit.id,
                'sales_type': 'offer_allocation', 'initial_payment': '250000.00'}
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['allocation_request']['request_type'], 'allocation')

    def test_create_sale_on_reserved_unit_conflicts(self):
        TestDataFactory.create_sale(self.user, TestDataFactory.create_client(self.company), self.unit)
        data = {'client': self.buyer.id, 'project': self.project.id, 'unit': self.unit.id}
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('error', response.data)

    def test_unit_of_other_project_rejected(self):
        other_unit = TestDataFactory.create_unit(TestDataFactory.create_project(self.company))
        data = {'client': self.buyer.id, 'project': self.project.id, 'unit': other_unit.id}
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('unit', response.data)

    def test_client_of_other_company_rejected(self):
        foreign = TestDataFactory.create_client(TestDataFactory.create_company())
        data = {'client': foreign.id, 'project': self.project.id, 'unit': self.unit.id}
        response = self.client.post('/api/v1/sales/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('client', response.data)

    def test_sales_summary(self):
        TestDataFactory.create_sale(self.user, self.buyer, self.unit, sale_amount=Decimal('1500000.00'))
        allocated = TestDataFactory.create_unit(self.project, status='allocated', client=self.buyer)
        TestDataFactory.create_sale(self.user, self.buyer, allocated, sale_amount=Decimal('100.00'),
                                    status='cancelled')
        response = self.client.get('/api/v1/sales/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_sales_value'], Decimal('1500000.00'))
        self.assertEqual(response.data['sales_count'], 1)
        self.assertEqual(response.data['allocated_plots'], 1)
        self.assertEqual(response.data['sales_by_status']['cancelled'], 1)

    def test_pending_allocations_flag(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        TestDataFactory.create_allocation_request(self.user, self.buyer, self.unit, sale=sale)
        response = self.client.get('/api/v1/sales/pending-allocations/')
        self.assertEqual(len(response.data), 1)
        self.assertTrue(response.data[0]['has_pending_request'])

    def test_update_sale_notes(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        response = self.client.patch(f'/api/v1/sales/{sale.id}/', {'notes': 'Paid by cheque'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Paid by cheque')

    def test_delete_sale_releases_unit(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        response = self.client.delete(f'/api/v1/sales/{sale.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, 'available')
        self.assertIsNone(self.unit.client)

    def test_delete_sale_with_pending_request_conflicts(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        TestDataFactory.create_allocation_request(self.user, self.buyer, self.unit, sale=sale)
        response = self.client.delete(f'/api/v1/sales/{sale.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Sale.objects.filter(pk=sale.id).exists())

    def test_delete_allocated_sale_conflicts(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        TestDataFactory.create_allocation(self.user, self.buyer, self.unit, sale=sale)
        response = self.client.delete(f'/api/v1/sales/{sale.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)


class SubmitRequestTests(TestCase):
    """Test submitting allocation, reallocation and revocation requests"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(self.project)
        self.buyer = TestDataFactory.create_client(self.company)

    def test_new_allocation_request(self):
        data = {'client': self.buyer.id, 'project': self.project.id, 'unit': self.unit.id, 'priority': 'high'}
        response = self.client.post('/api/v1/allocations/new/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['amount'], '1000000.00')
        self.assertTrue(AuditLog.objects.filter(action='allocation_submit').exists())
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.status, 'available')

    def test_duplicate_pending_request_conflicts(self):
        services.submit_allocation(self.user, self.buyer, self.project, self.unit)
        other = TestDataFactory.create_client(self.company)
        data = {'client': other.id, 'project': self.project.id, 'unit': self.unit.id}
        response = self.client.post('/api/v1/allocations/new/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_unit_reserved_for_another_client(self):
        TestDataFactory.create_sale(self.user, TestDataFactory.create_client(self.company), self.unit)
        with self.assertRaises(UnitUnavailable):
            services.submit_allocation(self.user, self.buyer, self.project, self.unit)

    def test_reserved_unit_links_pending_sale(self):
        sale = TestDataFactory.create_sale(self.user, self.buyer, self.unit)
        request_obj = services.submit_allocation(self.user, self.buyer, self.project, self.unit)
        self.assertEqual(request_obj.sale, sale)

    def test_reallocation_request(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        new_client = TestDataFactory.create_client(self.company)
        response = self.client.post(f'/api/v1/allocations/{allocation.id}/reallocate/',
                                    {'new_client': new_client.id, 'reason_category': 'client_request'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['request_type'], 'reallocation')
        self.assertEqual(response.data['new_client'], new_client.id)

    def test_reallocation_to_same_client_rejected(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        response = self.client.post(f'/api/v1/allocations/{allocation.id}/reallocate/',
                                    {'new_client': self.buyer.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reallocation_to_unavailable_unit_conflicts(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        taken = TestDataFactory.create_unit(self.project, status='sold')
        new_client = TestDataFactory.create_client(self.company)
        with self.assertRaises(UnitUnavailable):
            services.submit_reallocation(self.user, allocation, new_client, new_unit=taken)

    def test_revocation_needs_reason(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        response = self.client.post(f'/api/v1/allocations/{allocation.id}/revoke/', {'reason': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_refund_uses_total_paid(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('300000.00'), unit=self.unit)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('50000.00'), unit=self.unit, status='pending')
        request_obj = services.submit_revocation(self.user, allocation, 'Defaulted', refund_type='full')
        self.assertEqual(request_obj.refund_amount, Decimal('300000.00'))

    def test_partial_refund_bounds(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('300000.00'), unit=self.unit)
        url = f'/api/v1/allocations/{allocation.id}/revoke/'

        response = self.client.post(url, {'reason': 'Defaulted', 'refund_type': 'partial',
                                          'refund_amount': '400000.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'reason': 'Defaulted', 'refund_type': 'partial',
                                          'refund_amount': '100000.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['refund_amount'], '100000.00')

    def test_second_request_on_allocation_conflicts(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        services.submit_revocation(self.user, allocation, 'Defaulted')
        with self.assertRaises(DuplicateRequest):
            services.submit_reallocation(self.user, allocation, TestDataFactory.create_client(self.company))

    def test_revoked_allocation_cannot_be_revoked(self):
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, self.unit)
        allocation.status = 'revoked'
        allocation.save()
        with self.assertRaises(InvalidTransition):
            services.submit_revocation(self.user, allocation, 'Again')

    def test_other_company_allocation_not_found(self):
        foreign_project = TestDataFactory.create_project(TestDataFactory.create_company())
        foreign_unit = TestDataFactory.create_unit(foreign_project)
        foreign_client = TestDataFactory.create_client(foreign_project.company)
        allocation = TestDataFactory.create_allocation(self.user, foreign_client, foreign_unit)
        response = self.client.post(f'/api/v1/allocations/{allocation.id}/revoke/', {'reason': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ApprovalWorkflowTests(TestCase):
    """Test the OTP-gated approval queue"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.sales_user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        self.approver = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.approver)
        self.project = TestDataFactory.create_project(self.company)
        self.unit = TestDataFactory.create_unit(self.project)
        self.buyer = TestDataFactory.create_client(self.company)

    def _url(self, request_obj, action):
        return f'/api/v1/allocation-requests/{request_obj.id}/{action}/'

    def test_approve_allocation_with_emailed_otp(self):
        sale = services.record_sale(self.sales_user, {
            'client': self.buyer, 'project': self.project, 'unit': self.unit, 'sales_type': 'offer_allocation'
        })
        request_obj = sale.allocation_requests.get()

        response = self.client.post(self._url(request_obj, 'request-otp'), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.approver.email])
        self.assertFalse(AllocationOTP.objects.filter(code_hash=otp_from_outbox()).exists())

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': otp_from_outbox()},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertIsNotNone(response.data['resulting_allocation'])

        self.unit.refresh_from_db()
        sale.refresh_from_db()
        self.assertEqual(self.unit.status, 'allocated')
        self.assertEqual(self.unit.client, self.buyer)
        self.assertEqual(sale.status, 'allocated')
        allocation = Allocation.objects.get(unit=self.unit)
        self.assertEqual(allocation.approved_by, self.approver)
        self.assertTrue(AllocationHistory.objects.filter(allocation=allocation, event='allocated').exists())
        self.assertTrue(AuditLog.objects.filter(action='request_approve').exists())

    def test_non_approver_forbidden(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        client = AuthenticatedAPIClient().authenticate_user(self.sales_user)
        response = client.post(self._url(request_obj, 'request-otp'), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(len(mail.outbox), 0)

    def test_otp_resend_throttled(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        self.client.post(self._url(request_obj, 'request-otp'), {'action': 'approve'}, format='json')
        response = self.client.post(self._url(request_obj, 'request-otp'), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(len(mail.outbox), 1)

    def test_approve_without_otp_request(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_wrong_code_counts_attempts_then_locks(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        TestDataFactory.create_otp(request_obj, self.approver)

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': '654321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['attempts_left'], 4)
        self.assertTrue(AuditLog.objects.filter(action='otp_failed').exists())

        for _ in range(4):
            self.client.post(self._url(request_obj, 'approve'), {'otp_code': '654321'}, format='json')

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        request_obj.refresh_from_db()
        self.assertEqual(request_obj.status, 'pending')

    def test_expired_code_rejected(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        otp = TestDataFactory.create_otp(request_obj, self.approver)
        otp.expires_at = timezone.now() - timedelta(seconds=1)
        otp.save()
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_decline_otp_cannot_approve(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        TestDataFactory.create_otp(request_obj, self.approver, action='decline')
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_otp_is_single_use(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        TestDataFactory.create_otp(request_obj, self.approver)
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Allocation.objects.filter(unit=self.unit).count(), 1)

    def test_second_approver_cannot_approve_again(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        other_approver = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        other_client = AuthenticatedAPIClient().authenticate_user(other_approver)
        TestDataFactory.create_otp(request_obj, self.approver)
        TestDataFactory.create_otp(request_obj, other_approver)

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = other_client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        self.assertEqual(Allocation.objects.filter(unit=self.unit).count(), 1)
        allocation = Allocation.objects.get(unit=self.unit)
        self.assertEqual(allocation.approved_by, self.approver)
        # The second approver's code was never spent
        self.assertTrue(AllocationOTP.objects.filter(request=request_obj, user=other_approver,
                                                     consumed_at__isnull=True).exists())

    def test_decline_after_approval_conflicts(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        other_approver = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        other_client = AuthenticatedAPIClient().authenticate_user(other_approver)
        TestDataFactory.create_otp(request_obj, self.approver)
        TestDataFactory.create_otp(request_obj, other_approver, action='decline')

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = other_client.post(self._url(request_obj, 'decline'),
                                     {'otp_code': TEST_OTP_CODE, 'reason': 'Changed my mind'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        request_obj.refresh_from_db()
        self.unit.refresh_from_db()
        self.assertEqual(request_obj.status, 'approved')
        self.assertEqual(request_obj.decline_reason, '')
        self.assertEqual(self.unit.status, 'allocated')

    def test_wrong_guesses_counted_in_database(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        otp = TestDataFactory.create_otp(request_obj, self.approver)
        stale = AllocationOTP.objects.get(pk=otp.pk)
        # Guesses made elsewhere after this copy was read
        AllocationOTP.objects.filter(pk=otp.pk).update(attempts=3)

        with mock.patch('propty.sales.otp.latest_otp', return_value=stale):
            with self.assertRaises(OTPInvalid):
                verify_otp(request_obj, self.approver, 'approve', '654321')
        otp.refresh_from_db()
        self.assertEqual(otp.attempts, 4)

        stale = AllocationOTP.objects.get(pk=otp.pk)
        AllocationOTP.objects.filter(pk=otp.pk).update(attempts=5)
        with mock.patch('propty.sales.otp.latest_otp', return_value=stale):
            with self.assertRaises(OTPLocked):
                verify_otp(request_obj, self.approver, 'approve', '654321')
        otp.refresh_from_db()
        self.assertEqual(otp.attempts, 5)

    def test_decline_requires_reason(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        TestDataFactory.create_otp(request_obj, self.approver, action='decline')
        response = self.client.post(self._url(request_obj, 'decline'), {'otp_code': TEST_OTP_CODE, 'reason': ''},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_decline_leaves_unit_and_declines_sale(self):
        sale = services.record_sale(self.sales_user, {
            'client': self.buyer, 'project': self.project, 'unit': self.unit, 'sales_type': 'offer_allocation'
        })
        request_obj = sale.allocation_requests.get()
        TestDataFactory.create_otp(request_obj, self.approver, action='decline')
        response = self.client.post(self._url(request_obj, 'decline'),
                                    {'otp_code': TEST_OTP_CODE, 'reason': 'Documents missing'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['decline_reason'], 'Documents missing')

        self.unit.refresh_from_db()
        sale.refresh_from_db()
        self.assertEqual(self.unit.status, 'reserved')
        self.assertEqual(sale.status, 'declined')
        self.assertFalse(Allocation.objects.exists())

    def test_approve_reallocation_moves_unit(self):
        allocation = TestDataFactory.create_allocation(self.sales_user, self.buyer, self.unit)
        new_client = TestDataFactory.create_client(self.company)
        new_unit = TestDataFactory.create_unit(self.project)
        request_obj = services.submit_reallocation(self.sales_user, allocation, new_client, new_unit=new_unit)
        TestDataFactory.create_otp(request_obj, self.approver)

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        allocation.refresh_from_db()
        self.assertEqual(allocation.status, 'reallocated')
        new_allocation = Allocation.objects.get(previous_allocation=allocation)
        self.assertEqual(new_allocation.client, new_client)
        self.assertEqual(new_allocation.unit, new_unit)
        self.assertEqual(Unit.objects.get(pk=self.unit.pk).status, 'available')
        self.assertEqual(Unit.objects.get(pk=new_unit.pk).client, new_client)

        response = self.client.get(f'/api/v1/allocations/{new_allocation.id}/history/')
        self.assertIn('reallocated', [e['event'] for e in response.data])
        response = self.client.get('/api/v1/allocations/transfers/')
        self.assertEqual(response.data[0]['from_client_id'], self.buyer.id)

    def test_approve_revocation_frees_unit_and_queues_refund(self):
        sale = TestDataFactory.create_sale(self.sales_user, self.buyer, self.unit)
        allocation = TestDataFactory.create_allocation(self.sales_user, self.buyer, self.unit, sale=sale)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('400000.00'), unit=self.unit, sale=sale)
        marketer = TestDataFactory.create_marketer(self.company)
        Commission.objects.create(company=self.company, marketer=marketer, sale=sale, amount=Decimal('10.00'))
        request_obj = services.submit_revocation(self.sales_user, allocation, 'Payment default', refund_type='full')
        TestDataFactory.create_otp(request_obj, self.approver)

        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': TEST_OTP_CODE}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['resulting_allocation'])

        allocation.refresh_from_db()
        self.unit.refresh_from_db()
        sale.refresh_from_db()
        self.assertEqual(allocation.status, 'revoked')
        self.assertIsNotNone(allocation.revoked_at)
        self.assertEqual(self.unit.status, 'available')
        self.assertIsNone(self.unit.client)
        self.assertEqual(sale.status, 'cancelled')
        refund = ClientPayment.objects.get(payment_type='refund')
        self.assertEqual(refund.amount, Decimal('400000.00'))
        self.assertEqual(refund.status, 'pending')
        self.assertEqual(Commission.objects.get(sale=sale).status, 'cancelled')

    def test_approver_of_other_company_cannot_see_request(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        outsider = TestDataFactory.create_user(company=TestDataFactory.create_company(), groups=['Director'])
        client = AuthenticatedAPIClient().authenticate_user(outsider)
        response = client.post(self._url(request_obj, 'request-otp'), {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(PROPTY={'OTP_RESEND_INTERVAL_SECONDS': 0})
    def test_new_otp_supersedes_previous(self):
        request_obj = services.submit_allocation(self.sales_user, self.buyer, self.project, self.unit)
        TestDataFactory.create_otp(request_obj, self.approver, code='111111')
        TestDataFactory.create_otp(request_obj, self.approver, code='222222')
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': '111111'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(self._url(request_obj, 'approve'), {'otp_code': '222222'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ApprovalQueueTests(TestCase):
    """Test listing the approval queue"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Director'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.project = TestDataFactory.create_project(self.company)
        self.buyer = TestDataFactory.create_client(self.company)

    def test_queue_defaults_to_pending(self):
        pending = TestDataFactory.create_allocation_request(self.user, self.buyer,
                                                            TestDataFactory.create_unit(self.project))
        declined = TestDataFactory.create_allocation_request(self.user, self.buyer,
                                                             TestDataFactory.create_unit(self.project))
        declined.status = 'declined'
        declined.save()

        response = self.client.get('/api/v1/allocation-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data['results']], [pending.id])
        self.assertEqual(response.data['pending_counts'], {'allocation': 1, 'reallocation': 0, 'revocation': 0})
        self.assertTrue(response.data['can_approve'])

        response = self.client.get('/api/v1/allocation-requests/?status=all')
        self.assertEqual(len(response.data['results']), 2)

    def test_queue_type_filter(self):
        unit = TestDataFactory.create_unit(self.project)
        TestDataFactory.create_allocation_request(self.user, self.buyer, unit)
        response = self.client.get('/api/v1/allocation-requests/?type=revocation')
        self.assertEqual(response.data['results'], [])

    def test_request_detail_has_history(self):
        unit = TestDataFactory.create_unit(self.project)
        request_obj = services.submit_allocation(self.user, self.buyer, self.project, unit)
        response = self.client.get(f'/api/v1/allocation-requests/{request_obj.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['history'][0]['event'], 'submitted')
        self.assertTrue(response.data['can_approve'])

    def test_allocation_detail_total_paid(self):
        unit = TestDataFactory.create_unit(self.project)
        allocation = TestDataFactory.create_allocation(self.user, self.buyer, unit)
        TestDataFactory.create_payment(self.buyer, amount=Decimal('20000.00'), unit=unit)
        response = self.client.get(f'/api/v1/allocations/{allocation.id}/')
        self.assertEqual(response.data['total_paid'], Decimal('20000.00'))
        self.assertIsNone(response.data['pending_request'])


class ExpireOTPCommandTests(TestCase):
    """Test the expire_allocation_otps management command"""

    def setUp(self):
        company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=company, groups=['Manager'])
        project = TestDataFactory.create_project(company)
        self.request_obj = TestDataFactory.create_allocation_request(
            self.user, TestDataFactory.create_client(company), TestDataFactory.create_unit(project)
        )

    def _otp(self, hours_old, consumed=False, expired=False):
        otp = AllocationOTP.objects.create(
            request=self.request_obj, user=self.user, action='approve', code_hash='x',
            expires_at=timezone.now() + (timedelta(minutes=-1) if expired else timedelta(minutes=5)),
            consumed_at=timezone.now() if consumed else None,
        )
        AllocationOTP.objects.filter(pk=otp.pk).update(created_at=timezone.now() - timedelta(hours=hours_old))
        return otp

    def test_deletes_old_used_and_expired_codes(self):
        old_used = self._otp(48, consumed=True)
        old_expired = self._otp(48, expired=True)
        recent_used = self._otp(1, consumed=True)
        live = self._otp(48)

        out = StringIO()
        call_command('expire_allocation_otps', stdout=out)
        self.assertIn('Deleted 2', out.getvalue())
        remaining = set(AllocationOTP.objects.values_list('id', flat=True))
        self.assertEqual(remaining, {recent_used.id, live.id})
        self.assertNotIn(old_used.id, remaining)
        self.assertNotIn(old_expired.id, remaining)

    def test_dry_run_keeps_codes(self):
        self._otp(48, consumed=True)
        out = StringIO()
        call_command('expire_allocation_otps', '--dry-run', stdout=out)
        self.assertIn('Would delete 1', out.getvalue())
        self.assertEqual(AllocationOTP.objects.count(), 1)
