"""Commission calculation for marketer sales"""
from decimal import Decimal, ROUND_HALF_UP

from .models import ProjectCommission

TWO_PLACES = Decimal('0.01')


def get_commission_terms(marketer, project):
    """
    Return (commission_type, rate) for a marketer on a project.

    A ProjectCommission override wins over the marketer's default terms.
    """
    override = None
    if project is not None:
        override = ProjectCommission.objects.filter(marketer=marketer, project=project).first()
    if override:
        return override.commission_type, override.rate
    return marketer.commission_type, marketer.commission_rate


def calculate_commission(marketer, project, sale_amount):
    """Commission amount for a sale, rounded half-up to 2 decimal places"""
    commission_type, rate = get_commission_terms(marketer, project)
    rate = Decimal(str(rate or 0))
    if commission_type == 'fixed':
        amount = rate
    else:
        amount = Decimal(str(sale_amount or 0)) * rate / Decimal('100')
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
