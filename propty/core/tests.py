"""
Test suite for the core module
Tests: registration, JWT login, tenancy scoping, roles, settings, audit logs, global search
"""
from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from propty.core.models import Company, Setting, AuditLog
from propty.core.permissions import is_admin_user, can_approve_allocations, can_access_reports, scope_to_company
from propty.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from propty.core.utils import create_audit_log, generate_document_number
from propty.clients.models import Client
from propty.sales.models import Sale


class RegisterAndLoginTests(TestCase):
    """Test company sign-up and JWT login"""

    def setUp(self):
        self.client = APIClient()

    def test_register_creates_company_and_director(self):
        data = {
            'username': 'founder',
            'email': 'founder@acme.test',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'company_name': 'Acme Estates',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        company = Company.objects.get(slug='acme-estates')
        self.assertEqual(response.data['user']['company'], company.id)
        user = company.users.get()
        self.assertTrue(user.groups.filter(name='Director').exists())

    def test_register_duplicate_company_name(self):
        TestDataFactory.create_company(name='Acme Estates', slug='acme-estates')
        data = {
            'username': 'other',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'company_name': 'Acme Estates',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('company_name', response.data)

    def test_register_password_mismatch(self):
        data = {
            'username': 'mismatch',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'different-Passw0rd!',
            'company_name': 'Mismatch Ltd',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Company.objects.filter(slug='mismatch-ltd').exists())

    def test_login_returns_tokens(self):
        company = TestDataFactory.create_company()
        TestDataFactory.create_user(company=company, username='login_user', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'login_user', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_disabled_user_rejected(self):
        user = TestDataFactory.create_user(username='disabled_user', password='testpass123')
        user.is_active = False
        user.save()
        response = self.client.post('/api/v1/auth/login/', {'username': 'disabled_user', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserMeTests(TestCase):
    """Test the current-user endpoint"""

    def test_me_includes_company_and_flags(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_user(company=company, groups=['Manager'])
        client = AuthenticatedAPIClient().authenticate_user(user)

        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company']['id'], company.id)
        self.assertEqual(response.data['groups'], ['Manager'])
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_approve_allocations'])
        self.assertTrue(response.data['can_access_reports'])

    def test_sales_user_flags(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_user(company=company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(user)

        response = client.get('/api/v1/auth/me/')
        self.assertFalse(response.data['can_approve_allocations'])
        self.assertFalse(response.data['can_access_reports'])


class RolePermissionTests(TestCase):
    """Test role helpers"""

    def setUp(self):
        self.company = TestDataFactory.create_company()

    def test_director_is_admin(self):
        user = TestDataFactory.create_user(company=self.company, groups=['Director'])
        self.assertTrue(is_admin_user(user))
        self.assertTrue(can_approve_allocations(user))

    def test_staff_without_role_group_is_admin(self):
        user = TestDataFactory.create_user(company=self.company, is_staff=True)
        self.assertTrue(is_admin_user(user))

    def test_staff_with_role_group_uses_group(self):
        user = TestDataFactory.create_user(company=self.company, groups=['Sales'], is_staff=True)
        self.assertFalse(is_admin_user(user))

    def test_accountant_reports_but_no_approval(self):
        user = TestDataFactory.create_user(company=self.company, groups=['Accountant'])
        self.assertTrue(can_access_reports(user))
        self.assertFalse(can_approve_allocations(user))

    def test_superuser_can_approve(self):
        user = TestDataFactory.create_user(is_superuser=True)
        self.assertTrue(can_approve_allocations(user))


class TenancyScopingTests(TestCase):
    """Test company scoping of querysets"""

    def setUp(self):
        self.company_a = TestDataFactory.create_company()
        self.company_b = TestDataFactory.create_company()
        self.client_a = TestDataFactory.create_client(self.company_a)
        self.client_b = TestDataFactory.create_client(self.company_b)

    def test_user_sees_only_own_company(self):
        user = TestDataFactory.create_user(company=self.company_a)
        ids = set(scope_to_company(Client.objects.all(), user).values_list('id', flat=True))
        self.assertEqual(ids, {self.client_a.id})

    def test_user_without_company_sees_nothing(self):
        user = TestDataFactory.create_user()
        self.assertFalse(scope_to_company(Client.objects.all(), user).exists())

    def test_platform_superuser_sees_everything(self):
        user = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(scope_to_company(Client.objects.all(), user).count(), 2)

    def test_other_company_object_is_404(self):
        user = TestDataFactory.create_user(company=self.company_a)
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get(f'/api/v1/clients/{self.client_b.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class CompanyAPITests(TestCase):
    """Test platform company management"""

    def test_non_superuser_forbidden(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_user(company=company, groups=['Director'])
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/v1/companies/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superuser_creates_company(self):
        user = TestDataFactory.create_user(is_superuser=True)
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.post('/api/v1/companies/', {'name': 'Palm Homes', 'slug': 'palm-homes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Company.objects.filter(slug='palm-homes').exists())


class UserAPITests(TestCase):
    """Test company-scoped user management"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.admin = TestDataFactory.create_user(company=self.company, groups=['Admin'])
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_list_only_company_users(self):
        TestDataFactory.create_user(company=TestDataFactory.create_company())
        colleague = TestDataFactory.create_user(company=self.company)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = {row['id'] for row in response.data}
        self.assertEqual(ids, {self.admin.id, colleague.id})

    def test_create_user_in_company(self):
        data = {
            'username': 'new_sales',
            'email': 'sales@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
            'groups': ['Sales'],
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['company'], self.company.id)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_user_cannot_manage_users(self):
        sales = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(sales)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SettingAPITests(TestCase):
    """Test company settings"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.admin = TestDataFactory.create_user(company=self.company, groups=['Admin'])
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_and_list_setting(self):
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'NGN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        Setting.objects.create(company=TestDataFactory.create_company(), key='currency', value='USD')

        response = self.client.get('/api/v1/settings/')
        self.assertEqual([row['value'] for row in response.data], ['NGN'])

    def test_duplicate_key_rejected(self):
        Setting.objects.create(company=self.company, key='currency', value='NGN')
        response = self.client.post('/api/v1/settings/', {'key': 'currency', 'value': 'USD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_change(self):
        user = TestDataFactory.create_user(company=self.company, groups=['Sales'])
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.post('/api/v1/settings/', {'key': 'currency', 'value': 'NGN'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogTests(TestCase):
    """Test audit log helpers and endpoints"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.admin = TestDataFactory.create_user(company=self.company, groups=['Director'])
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_audit_log_uses_user_company(self):
        log = create_audit_log(user=self.admin, action='create', model_name='Client', object_id=1,
                               object_name='Ada')
        self.assertEqual(log.company, self.company)
        self.assertEqual(log.object_id, '1')

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(user=self.admin, action='create', model_name='Client'))

    def test_list_filters_by_action(self):
        create_audit_log(user=self.admin, action='create', model_name='Client', object_id=1)
        create_audit_log(user=self.admin, action='delete', model_name='Client', object_id=1)
        other = TestDataFactory.create_user(company=TestDataFactory.create_company())
        create_audit_log(user=other, action='create', model_name='Client', object_id=2)

        response = self.client.get('/api/v1/audit-logs/?action=create')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(AuditLog.objects.count(), 3)


class DocumentNumberTests(TestCase):
    """Test sequential document numbers"""

    def test_numbers_increment(self):
        company = TestDataFactory.create_company()
        user = TestDataFactory.create_user(company=company)
        project = TestDataFactory.create_project(company)
        client = TestDataFactory.create_client(company)

        first = generate_document_number(Sale, 'sale_number', 'SAL')
        self.assertTrue(first.startswith('SAL-'))
        self.assertTrue(first.endswith('-0001'))

        sale = TestDataFactory.create_sale(user, client, TestDataFactory.create_unit(project))
        sale.sale_number = first
        sale.save()
        self.assertTrue(generate_document_number(Sale, 'sale_number', 'SAL').endswith('-0002'))


class GlobalSearchTests(TestCase):
    """Test global search"""

    def setUp(self):
        self.company = TestDataFactory.create_company()
        self.user = TestDataFactory.create_user(company=self.company)
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

    def test_search_is_company_scoped(self):
        TestDataFactory.create_client(self.company, first_name='Adaeze')
        TestDataFactory.create_client(TestDataFactory.create_company(), first_name='Adaobi')
        TestDataFactory.create_project(self.company, name='Ada Gardens')

        response = self.client.get('/api/v1/search/?q=ada')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data['clients']], ['Adaeze Tester'])
        self.assertEqual(len(response.data['projects']), 1)

    def test_empty_query(self):
        response = self.client.get('/api/v1/search/?q=')
        self.assertEqual(response.data['clients'], [])


class ManagementCommandTests(TestCase):
    """Test the role group and demo data commands"""

    def test_create_user_groups(self):
        call_command('create_user_groups', stdout=StringIO())
        names = set(Group.objects.values_list('name', flat=True))
        self.assertTrue({'Director', 'Admin', 'Manager', 'Sales', 'Accountant'} <= names)

    def test_seed_demo_data(self):
        out = StringIO()
        call_command('seed_demo_data', stdout=out)
        company = Company.objects.get(slug='demo-estates')
        self.assertEqual(company.projects.count(), 2)
        self.assertEqual(Client.objects.filter(company=company).count(), 5)
        self.assertEqual(Sale.objects.filter(company=company).count(), 3)
        self.assertEqual(company.allocation_requests.filter(status='pending').count(), 2)
        self.assertIn('Demo data loaded', out.getvalue())

        call_command('seed_demo_data', stdout=out)
        self.assertEqual(Company.objects.filter(slug='demo-estates').count(), 1)

        call_command('seed_demo_data', '--reset', stdout=StringIO())
        company = Company.objects.get(slug='demo-estates')
        self.assertEqual(Sale.objects.filter(company=company).count(), 3)
