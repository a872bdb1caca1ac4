"""
Management command to load a demo company with projects, units, clients and sales
Usage: python manage.py seed_demo_data [--slug demo-estates] [--password demo12345] [--reset]
"""
from decimal import Decimal

from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group
from django.db import transaction

from propty.core.cache_signals import suspend_cache_signals
from propty.core.cache_utils import invalidate_dashboard_cache
from propty.core.models import Company, User
from propty.clients.models import Client
from propty.marketers.models import Marketer
from propty.projects.models import Project, Block
from propty.projects.utils import generate_block_units
from propty.sales import services

DEMO_PROJECTS = [
    {
        'name': 'Palm Gardens Estate',
        'location': 'Ibeju-Lekki, Lagos',
        'category': 'Land',
        'terminology_type': 'plots',
        'blocks': [('A', Decimal('4500000.00'), '450 sqm', 12), ('B', Decimal('6000000.00'), '600 sqm', 8)],
    },
    {
        'name': 'Cedar Court Residences',
        'location': 'Lokogoma, Abuja',
        'category': 'Housing',
        'terminology_type': 'units',
        'blocks': [('Duplex', Decimal('65000000.00'), '4 bed', 6)],
    },
]

DEMO_CLIENTS = [
    ('Adaeze', 'Nwosu', 'website'),
    ('Babatunde', 'Adeyemi', 'referral'),
    ('Chiamaka', 'Eze', 'social-media'),
    ('Ibrahim', 'Musa', 'walk-in'),
    ('Funke', 'Akindele', 'advertisement'),
]

DEMO_USERS = [
    ('director', 'Director'),
    ('manager', 'Manager'),
    ('sales', 'Sales'),
    ('accounts', 'Accountant'),
]


class Command(BaseCommand):
    help = 'Load a demo company with projects, units, clients, a marketer and a few sales'

    def add_arguments(self, parser):
        parser.add_argument('--slug', default='demo-estates', help='Slug of the demo company')
        parser.add_argument('--password', default='demo12345', help='Password for the demo users')
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Delete the demo company and its data before loading',
        )

    def handle(self, *args, **options):
        slug = options['slug']

        existing = Company.objects.filter(slug=slug).first()
        if existing and not options['reset']:
            self.stdout.write(self.style.WARNING(f'Company "{slug}" already exists. Use --reset to reload it.'))
            return

        call_command('create_user_groups', stdout=self.stdout)

        with suspend_cache_signals(), transaction.atomic():
            if existing:
                self._reset(existing)
                self.stdout.write(self.style.WARNING(f'Removed existing demo company "{slug}"'))
            company = self._load(slug, options['password'])

        invalidate_dashboard_cache(company.id)
        self.stdout.write(self.style.SUCCESS(f'✓ Demo data loaded for {company.name}'))

    def _reset(self, company):
        # Sales protect clients and units, so remove the workflow rows first
        company.allocation_history.all().delete()
        company.allocation_requests.all().delete()
        company.commissions.all().delete()
        company.allocations.all().delete()
        company.sales.all().delete()
        company.client_payments.all().delete()
        User.objects.filter(company=company).delete()
        company.delete()

    def _load(self, slug, password):
        company = Company.objects.create(name='Demo Estates Ltd', slug=slug, email=f'info@{slug}.test')

        users = {}
        for username, group_name in DEMO_USERS:
            user = User.objects.create_user(
                username=f'{slug}-{username}',
                email=f'{username}@{slug}.test',
                password=password,
                company=company,
            )
            user.groups.add(Group.objects.get(name=group_name))
            users[group_name] = user
            self.stdout.write(f'  User: {user.username} ({group_name})')

        projects = []
        for config in DEMO_PROJECTS:
            project = Project.objects.create(
                company=company,
                name=config['name'],
                location=config['location'],
                category=config['category'],
                terminology_type=config['terminology_type'],
                status='Selling',
            )
            unit_count = 0
            for name, price, size, count in config['blocks']:
                block = Block.objects.create(project=project, name=name, default_price=price, default_size=size,
                                             structure_type=config['terminology_type'])
                unit_count += len(generate_block_units(block, count))
            projects.append(project)
            self.stdout.write(f'  Project: {project.name} ({unit_count} {project.terminology_type})')

        marketer = Marketer.objects.create(
            company=company, first_name='Segun', last_name='Bakare', email=f'segun@{slug}.test',
            commission_type='percentage', commission_rate=Decimal('5.00'),
        )

        clients = [
            Client.objects.create(
                company=company, first_name=first_name, last_name=last_name,
                email=f'{first_name.lower()}@{slug}.test', phone=f'0803000{index:04d}',
                referral_source=source, assigned_marketer=marketer,
            )
            for index, (first_name, last_name, source) in enumerate(DEMO_CLIENTS, start=1)
        ]
        self.stdout.write(f'  Clients: {len(clients)}')

        # A few sales in different states; two of them queue allocation requests
        sales_user = users['Sales']
        land = projects[0]
        land_units = list(land.units.order_by('unit_number')[:3])
        sale_types = ['offer_only', 'offer_allocation', 'instant_allocation']
        for client, unit, sales_type in zip(clients, land_units, sale_types):
            sale = services.record_sale(sales_user, {
                'client': client,
                'project': land,
                'unit': unit,
                'marketer': marketer,
                'sales_type': sales_type,
                'initial_payment': (unit.price * Decimal('0.30')).quantize(Decimal('0.01')),
                'payment_method': 'bank-transfer',
            })
            self.stdout.write(f'  Sale: {sale.sale_number} {client.full_name} -> {unit.unit_number} ({sales_type})')

        return company
