"""Access to the PROPTY settings dict with built-in defaults"""
from django.conf import settings

DEFAULTS = {
    'OTP_LENGTH': 6,
    'OTP_TTL_SECONDS': 300,
    'OTP_MAX_ATTEMPTS': 5,
    'OTP_RESEND_INTERVAL_SECONDS': 30,
    'APPROVER_GROUPS': ['Director', 'Admin', 'Manager'],
    'DEFAULT_CURRENCY': 'NGN',
}


def get_setting(name):
    """Return settings.PROPTY[name], falling back to DEFAULTS"""
    overrides = getattr(settings, 'PROPTY', {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
