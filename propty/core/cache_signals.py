"""
Cache invalidation signals
Automatically invalidate report caches when sales data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache

logger = logging.getLogger('propty.core')

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

# Models whose changes affect dashboard and report figures
DASHBOARD_MODELS = ['Sale', 'Allocation', 'AllocationRequest', 'ClientPayment', 'Unit', 'Client', 'Commission']


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def get_instance_company_id(instance):
    company_id = getattr(instance, 'company_id', None)
    if company_id is None and getattr(instance, 'project_id', None):
        company_id = instance.project.company_id
    return company_id


@receiver([post_save, post_delete])
def invalidate_dashboard_on_change(sender, instance, **kwargs):
    """Invalidate dashboard cache when sales, allocations or payments change"""
    if is_suspended():
        return

    if sender.__name__ not in DASHBOARD_MODELS:
        return

    try:
        company_id = get_instance_company_id(instance)
        # Invalidate after commit so the cache is not repopulated with stale data
        transaction.on_commit(lambda: invalidate_dashboard_cache(company_id))
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_change signal: {e}")
