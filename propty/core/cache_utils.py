"""
Caching utilities for expensive report queries
Uses Redis (django-redis) in production, local memory otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger('propty.core')

# Cache TTLs (in seconds)
DASHBOARD_KPI_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes

DASHBOARD_KPI_KEY_PREFIX = 'dashboard_kpis'
REPORTS_KEY_PREFIX = 'reports'
REPORTS_VERSION_KEY_PREFIX = 'reports_version'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_dashboard_cache_key(company_id):
    """Dashboard KPIs are cached per company; platform-wide under 'all'"""
    return f"{DASHBOARD_KPI_KEY_PREFIX}:{company_id or 'all'}"


def get_reports_version(company_id):
    """
    Current generation of a company's cached reports.
    Report keys embed it, so bumping it orphans every older entry on any cache backend.
    """
    version_key = f"{REPORTS_VERSION_KEY_PREFIX}:{company_id or 'all'}"
    version = cache.get(version_key)
    if version is None:
        version = 1
        cache.add(version_key, version, None)
    return version


def get_report_cache_key(company_id, name, date_from, date_to):
    return make_cache_key(REPORTS_KEY_PREFIX, company_id, get_reports_version(company_id), name, date_from, date_to)


def bump_reports_version(company_id):
    version_key = f"{REPORTS_VERSION_KEY_PREFIX}:{company_id or 'all'}"
    try:
        return cache.incr(version_key)
    except ValueError:
        # Key missing or evicted
        cache.set(version_key, 2, None)
        return 2


def invalidate_dashboard_cache(company_id=None):
    """Drop the cached dashboard KPIs and reports for one company and the platform view"""
    cache.delete_many([get_dashboard_cache_key(company_id), get_dashboard_cache_key(None)])
    bump_reports_version(company_id)
    if company_id:
        bump_reports_version(None)
    logger.debug(f"Invalidated dashboard and report cache for company {company_id}")
