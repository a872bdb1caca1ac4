"""
One-time codes guarding approve/decline of allocation requests.

Only an HMAC of each code is stored. A code is bound to one request, one
approver and one action, expires after OTP_TTL_SECONDS and locks after
OTP_MAX_ATTEMPTS wrong guesses.
"""
import logging
import secrets
from datetime import timedelta

from django.db.models import F
from django.utils import timezone
from django.utils.crypto import constant_time_compare, salted_hmac

from propty.core.conf import get_setting
from .exceptions import OTPInvalid, OTPExpired, OTPLocked, OTPNotRequested, OTPThrottled
from .models import AllocationOTP

logger = logging.getLogger('propty.sales')

OTP_ACTIONS = ('approve', 'decline')
OTP_KEY_SALT = 'propty.sales.otp'


def generate_code(length=None):
    length = length or get_setting('OTP_LENGTH')
    return ''.join(secrets.choice('0123456789') for _ in range(length))


def hash_code(request_id, user_id, action, code):
    value = f"{request_id}:{user_id}:{action}:{code}"
    return salted_hmac(OTP_KEY_SALT, value, algorithm='sha256').hexdigest()


def latest_otp(request, user, action):
    return (
        AllocationOTP.objects
        .filter(request=request, user=user, action=action, consumed_at__isnull=True)
        .order_by('-created_at', '-id')
        .first()
    )


def create_otp(request, user, action, code=None):
    """
    Store a fresh code for (request, user, action) and return (otp, code).

    Raises OTPThrottled when the previous code is younger than the resend
    interval. Older unconsumed codes are superseded.
    """
    now = timezone.now()
    interval = get_setting('OTP_RESEND_INTERVAL_SECONDS')
    previous = AllocationOTP.objects.filter(request=request, user=user, action=action).order_by('-created_at', '-id').first()
    if previous and interval and previous.created_at > now - timedelta(seconds=interval):
        wait = int((previous.created_at + timedelta(seconds=interval) - now).total_seconds()) + 1
        raise OTPThrottled(f"An OTP was sent recently, try again in {wait} seconds")

    AllocationOTP.objects.filter(
        request=request, user=user, action=action, consumed_at__isnull=True
    ).update(consumed_at=now)

    code = code or generate_code()
    otp = AllocationOTP.objects.create(
        request=request,
        user=user,
        action=action,
        code_hash=hash_code(request.pk, user.pk, action, code),
        expires_at=now + timedelta(seconds=get_setting('OTP_TTL_SECONDS')),
    )
    return otp, code


def verify_otp(request, user, action, code):
    """
    Check a submitted code and return the matching AllocationOTP.

    A wrong code is counted against the OTP and raises OTPInvalid. The OTP is
    not consumed here; see consume_otp().
    """
    code = str(code or '').strip()
    if len(code) != get_setting('OTP_LENGTH') or not code.isdigit():
        raise OTPInvalid(f"OTP code must be {get_setting('OTP_LENGTH')} digits")

    otp = latest_otp(request, user, action)
    if otp is None:
        raise OTPNotRequested()
    if otp.is_expired():
        raise OTPExpired()
    if otp.attempts >= get_setting('OTP_MAX_ATTEMPTS'):
        raise OTPLocked()

    if not constant_time_compare(otp.code_hash, hash_code(request.pk, user.pk, action, code)):
        # Counted in the database so concurrent guesses are all charged
        charged = AllocationOTP.objects.filter(
            pk=otp.pk, attempts__lt=get_setting('OTP_MAX_ATTEMPTS')
        ).update(attempts=F('attempts') + 1)
        otp.refresh_from_db(fields=['attempts'])
        if not charged:
            raise OTPLocked()
        logger.warning(f"Wrong OTP for request {request.request_number} by {user.username} ({otp.attempts} attempts)")
        raise OTPInvalid()

    return otp


def consume_otp(otp):
    """Mark an OTP used; returns False if another caller consumed it first"""
    return AllocationOTP.objects.filter(pk=otp.pk, consumed_at__isnull=True).update(consumed_at=timezone.now()) == 1
