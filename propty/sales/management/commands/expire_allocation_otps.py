"""
Management command to purge used and expired allocation OTPs
Usage: python manage.py expire_allocation_otps [--older-than-hours N] [--dry-run]
"""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db.models import Q
from django.utils import timezone

from propty.sales.models import AllocationOTP


class Command(BaseCommand):
    help = 'Delete allocation OTPs that were consumed or have expired'

    def add_arguments(self, parser):
        parser.add_argument(
            '--older-than-hours',
            type=int,
            default=24,
            help='Only delete OTPs created more than this many hours ago (default 24)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report what would be deleted without deleting',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        cutoff = now - timedelta(hours=options['older_than_hours'])
        stale = AllocationOTP.objects.filter(
            Q(consumed_at__isnull=False) | Q(expires_at__lte=now),
            created_at__lt=cutoff,
        )
        count = stale.count()

        if options['dry_run']:
            self.stdout.write(self.style.WARNING(f'Would delete {count} allocation OTPs'))
            return

        stale.delete()
        self.stdout.write(self.style.SUCCESS(f'✓ Deleted {count} allocation OTPs'))
