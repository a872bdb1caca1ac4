"""
Test suite for the notices module
Tests: drafting, recipient resolution, preview and sending over email and in-app
"""
from django.core import mail
from django.test import TestCase
from rest_framework import status
from propty.core.models import AuditLog
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.notices.models import Notice, NoticeDelivery
from propty.notices.services import NoticeAlreadySent, resolve_recipients, send_notice


class NoticeDraftTests(TestCase):
    """Test creating and editing notices"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_draft(self):
        data = {'title': 'Site inspection', 'message': 'Saturday at 10am', 'channels': ['email', 'in_app', 'email']}
        response = self.client.post('/api/v1/notices/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['channels'], ['email', 'in_app'])
        self.assertEqual(Notice.objects.get(pk=response.data['id']).created_by, self.user)

    def test_unknown_channel_rejected(self):
        data = {'title': 'Hi', 'message': 'Hello', 'channels': ['sms']}
        response = self.client.post('/api/v1/notices/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('channels', response.data)

    def test_channels_required(self):
        response = self.client.post('/api/v1/notices/', {'title': 'Hi', 'message': 'Hello'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('channels', response.data)

    def test_selected_needs_recipients(self):
        data = {'title': 'Hi', 'message': 'Hello', 'channels': ['in_app'], 'recipient_type': 'selected'}
        response = self.client.post('/api/v1/notices/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('recipients', response.data)

    def test_project_audience_needs_project(self):
        data = {'title': 'Hi', 'message': 'Hello', 'channels': ['in_app'], 'recipient_type': 'project'}
        response = self.client.post('/api/v1/notices/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('project', response.data)

    def test_recipient_of_other_company_rejected(self):
        foreign = TestDataFactory.create_client(TestDataFactory.create_company())
        data = {'title': 'Hi', 'message': 'Hello', 'channels': ['in_app'], 'recipient_type': 'selected',
                'recipients': [foreign.id]}
        response = self.client.post('/api/v1/notices/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sent_notice_cannot_be_edited(self):
        notice = Notice.objects.create(company=self.company, title='Old', message='Old', channels=['in_app'],
                                       status='sent')
        response = self.client.patch(f'/api/v1/notices/{notice.id}/', {'title': 'New'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_edit_draft(self):
        notice = Notice.objects.create(company=self.company, title='Old', message='Old', channels=['in_app'])
        response = self.client.patch(f'/api/v1/notices/{notice.id}/', {'title': 'New'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'New')

    def test_list_by_status(self):
        Notice.objects.create(company=self.company, title='Draft', message='x', channels=['in_app'])
        Notice.objects.create(company=self.company, title='Sent', message='x', channels=['in_app'], status='sent')
        Notice.objects.create(company=TestDataFactory.create_company(), title='Other', message='x',
                              channels=['in_app'])
        response = self.client.get('/api/v1/notices/?status=sent')
        self.assertEqual([n['title'] for n in response.data], ['Sent'])


class NoticeSendTests(TestCase):
    """Test recipient resolution, preview and sending"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company, groups=['Manager'])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.amaka = TestDataFactory.create_client(self.company, first_name='Amaka')
        self.bayo = TestDataFactory.create_client(self.company, first_name='Bayo', email='')
        TestDataFactory.create_client(self.company, first_name='Chika', status='inactive')

    def _notice(self, **kwargs):
        defaults = {'company': self.company, 'title': 'Price review', 'message': 'Prices change next month',
                    'channels': ['email', 'in_app']}
        defaults.update(kwargs)
        return Notice.objects.create(**defaults)

    def test_all_reaches_active_clients(self):
        recipients = list(resolve_recipients(self._notice()))
        self.assertEqual(recipients, [self.amaka, self.bayo])

    def test_project_audience(self):
        project = TestDataFactory.create_project(self.company)
        TestDataFactory.create_unit(project, status='allocated', client=self.amaka)
        TestDataFactory.create_unit(project, status='reserved', client=self.amaka)
        notice = self._notice(recipient_type='project', project=project)
        self.assertEqual(list(resolve_recipients(notice)), [self.amaka])

    def test_preview(self):
        notice = self._notice()
        response = self.client.get(f'/api/v1/notices/{notice.id}/preview/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['recipient_count'], 2)
        self.assertEqual(response.data['without_email'], 1)
        self.assertEqual(len(response.data['sample']), 2)
        self.assertFalse(NoticeDelivery.objects.exists())

    def test_send_email_and_in_app(self):
        notice = self._notice()
        response = self.client.post(f'/api/v1/notices/{notice.id}/send/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'sent')
        self.assertEqual(response.data['recipient_count'], 2)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, [self.amaka.email])
        self.assertEqual(mail.outbox[0].subject, 'Price review')

        skipped = NoticeDelivery.objects.get(client=self.bayo, channel='email')
        self.assertEqual(skipped.status, 'skipped')
        self.assertEqual(NoticeDelivery.objects.filter(channel='in_app', status='delivered').count(), 2)
        self.assertTrue(AuditLog.objects.filter(action='notice_send', object_id=str(notice.id)).exists())

    def test_send_to_selected(self):
        notice = self._notice(recipient_type='selected', channels=['in_app'])
        notice.recipients.add(self.bayo)
        self.client.post(f'/api/v1/notices/{notice.id}/send/')
        self.assertEqual(list(NoticeDelivery.objects.values_list('client_id', flat=True)), [self.bayo.id])

        response = self.client.get(f'/api/v1/clients/{self.bayo.id}/notices/')
        self.assertEqual(response.data[0]['title'], 'Price review')

    def test_send_twice_conflicts(self):
        notice = self._notice(channels=['in_app'])
        self.client.post(f'/api/v1/notices/{notice.id}/send/')
        response = self.client.post(f'/api/v1/notices/{notice.id}/send/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(NoticeDelivery.objects.count(), 2)

    def test_resend_raises_conflict(self):
        notice = self._notice(channels=['in_app'])
        send_notice(self.user, notice)
        with self.assertRaises(NoticeAlreadySent) as ctx:
            send_notice(self.user, notice)
        self.assertEqual(ctx.exception.status_code, status.HTTP_409_CONFLICT)
        self.assertIn(notice.title, ctx.exception.message)

    def test_other_company_notice_not_found(self):
        notice = Notice.objects.create(company=TestDataFactory.create_company(), title='x', message='x',
                                       channels=['in_app'])
        response = self.client.post(f'/api/v1/notices/{notice.id}/send/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
