"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from propty.core.models import Company
from propty.clients.models import Client, ClientPayment
from propty.marketers.models import Marketer
from propty.projects.models import Project, Block, Unit
from propty.sales.models import Sale, Allocation, AllocationRequest
from propty.sales.otp import create_otp
from decimal import Decimal
from django.utils import timezone
import random
import string
import uuid

User = get_user_model()

TEST_OTP_CODE = '123456'


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_company(name=None, slug=None):
        """Create a test tenant company"""
        if not name:
            name = f'Company_{TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'company-{TestDataFactory.random_string(8).lower()}'
        return Company.objects.create(name=name, slug=slug, email=f'{slug}@test.com')

    @staticmethod
    def create_user(company=None, groups=None, username=None, email=None, password='testpass123',
                    is_staff=False, is_superuser=False):
        """Create a test user, optionally in a company and role groups"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if email is None:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
            company=company
        )
        for group_name in groups or []:
            group, _ = Group.objects.get_or_create(name=group_name)
            user.groups.add(group)
        return user

    @staticmethod
    def create_project(company, name=None, location='Lekki, Lagos', status='Selling'):
        """Create a test project"""
        if not name:
            name = f'Project_{TestDataFactory.random_string(6)}'
        return Project.objects.create(company=company, name=name, location=location, status=status)

    @staticmethod
    def create_block(project, name=None, default_price=None):
        """Create a test block"""
        if not name:
            name = f'B{TestDataFactory.random_string(4).upper()}'
        if default_price is None:
            default_price = Decimal('1000000.00')
        return Block.objects.create(project=project, name=name, default_price=default_price)

    @staticmethod
    def create_unit(project, unit_number=None, price=None, status='available', block=None, client=None):
        """Create a test unit"""
        if not unit_number:
            unit_number = f'U-{TestDataFactory.random_string(6).upper()}'
        if price is None:
            price = Decimal('1000000.00')
        return Unit.objects.create(
            project=project,
            block=block,
            unit_number=unit_number,
            price=price,
            status=status,
            client=client
        )

    @staticmethod
    def create_client(company, first_name=None, last_name='Tester', email=None, phone=None, status='active'):
        """Create a test client"""
        if not first_name:
            first_name = f'Client{TestDataFactory.random_string(5)}'
        if email is None:
            email = f'{first_name.lower()}@test.com'
        if not phone:
            phone = f'080{random.randint(10000000, 99999999)}'
        return Client.objects.create(
            company=company,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            status=status
        )

    @staticmethod
    def create_marketer(company, first_name=None, commission_type='percentage', commission_rate=None):
        """Create a test marketer"""
        if not first_name:
            first_name = f'Marketer{TestDataFactory.random_string(5)}'
        if commission_rate is None:
            commission_rate = Decimal('5.00')
        return Marketer.objects.create(
            company=company,
            first_name=first_name,
            last_name='Agent',
            commission_type=commission_type,
            commission_rate=commission_rate
        )

    @staticmethod
    def create_sale(user, client, unit, sale_amount=None, status='pending', sales_type='offer_only', marketer=None):
        """Create a sale row directly; the unit is reserved for the client"""
        sale_number = f"SAL-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        sale = Sale.objects.create(
            company=unit.project.company,
            sale_number=sale_number,
            client=client,
            project=unit.project,
            unit=unit,
            marketer=marketer,
            sales_type=sales_type,
            sale_amount=sale_amount if sale_amount is not None else unit.price,
            status=status,
            created_by=user
        )
        if unit.status == 'available':
            unit.status = 'reserved'
            unit.client = client
            unit.save()
        return sale

    @staticmethod
    def create_allocation(user, client, unit, sale=None):
        """Create an active allocation; the unit becomes allocated to the client"""
        allocation_number = f"ALC-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        allocation = Allocation.objects.create(
            company=unit.project.company,
            allocation_number=allocation_number,
            sale=sale,
            client=client,
            project=unit.project,
            unit=unit,
            approved_by=user
        )
        unit.status = 'allocated'
        unit.client = client
        unit.save()
        if sale is not None:
            sale.status = 'allocated'
            sale.save()
        return allocation

    @staticmethod
    def create_allocation_request(user, client, unit, sale=None):
        """Create a pending allocation request without going through the service"""
        request_number = f"ALR-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
        return AllocationRequest.objects.create(
            company=unit.project.company,
            request_number=request_number,
            request_type=AllocationRequest.TYPE_ALLOCATION,
            client=client,
            project=unit.project,
            unit=unit,
            sale=sale,
            amount=unit.price,
            submitted_by=user
        )

    @staticmethod
    def create_payment(client, amount=None, unit=None, sale=None, payment_type='instalment', status='completed',
                       user=None):
        """Create a client payment"""
        if amount is None:
            amount = Decimal('100000.00')
        return ClientPayment.objects.create(
            company=client.company,
            client=client,
            sale=sale,
            project=unit.project if unit else None,
            unit=unit,
            amount=amount,
            payment_type=payment_type,
            status=status,
            paid_date=timezone.localdate() if status == 'completed' else None,
            created_by=user
        )

    @staticmethod
    def create_otp(request_obj, user, action='approve', code=TEST_OTP_CODE):
        """Store an OTP with a known code; returns the AllocationOTP"""
        otp, _ = create_otp(request_obj, user, action, code=code)
        return otp


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
