from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission


class Command(BaseCommand):
    help = 'Create Django user groups for RBAC: Director, Admin, Manager, Sales, Accountant'

    def handle(self, *args, **options):
        groups_config = [
            {
                'name': 'Director',
                'description': 'Company owner - full access, approves allocations',
                'apps': '*',
            },
            {
                'name': 'Admin',
                'description': 'Company administrator - full access, approves allocations',
                'apps': '*',
            },
            {
                'name': 'Manager',
                'description': 'Sales manager - projects, sales and reports, approves allocations',
                'apps': ['projects', 'clients', 'marketers', 'sales', 'notices'],
            },
            {
                'name': 'Sales',
                'description': 'Sales staff - records sales and submits allocation requests',
                'apps': ['clients', 'sales'],
            },
            {
                'name': 'Accountant',
                'description': 'Finance - payments, commissions and reports',
                'apps': ['clients', 'marketers'],
            },
        ]

        created_count = 0
        updated_count = 0

        for group_config in groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                updated_count += 1

            if group_config['apps'] == '*':
                permissions = Permission.objects.exclude(content_type__app_label='admin')
            else:
                permissions = Permission.objects.filter(content_type__app_label__in=group_config['apps'])
            group.permissions.set(permissions)
            self.stdout.write(f'  {group_config["description"]}')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {updated_count} groups already existed'
        ))
