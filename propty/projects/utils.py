"""Helpers for generating and summarising units"""
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Count, Sum

from .models import Unit

OCCUPIED_STATUSES = ('allocated', 'sold')
WORKFLOW_STATUSES = ('reserved', 'allocated')


def generate_block_units(block, count):
    """
    Create `count` units in a block using the block defaults.

    Units are numbered `<block name>-<NN>`, continuing after the highest
    number already used in the block.
    """
    if not count:
        return []

    prefix = f"{block.name}-"
    existing = set(
        Unit.objects.filter(project=block.project, unit_number__startswith=prefix).values_list('unit_number', flat=True)
    )
    units = []
    number = 1
    while len(units) < count:
        unit_number = f"{prefix}{number:02d}"
        number += 1
        if unit_number in existing:
            continue
        units.append(Unit(
            project=block.project,
            block=block,
            unit_number=unit_number,
            size=block.default_size,
            price=block.default_price,
            prototype=block.default_prototype,
        ))
    return Unit.objects.bulk_create(units)


def unit_status_counts(units):
    counts = {status: 0 for status, _ in Unit.STATUS_CHOICES}
    for row in units.order_by().values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']
    return counts


def allocation_rate(counts):
    """Share of allocated or sold units, in percent with 2 decimals"""
    total = sum(counts.values())
    if not total:
        return Decimal('0.00')
    occupied = sum(counts.get(status, 0) for status in OCCUPIED_STATUSES)
    return (Decimal(occupied) * 100 / Decimal(total)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def project_revenue(payments):
    """Completed, non-refund payments"""
    total = payments.filter(status='completed').exclude(payment_type='refund').aggregate(total=Sum('amount'))['total']
    return total or Decimal('0.00')
