"""
Errors raised by the allocation workflow.

Each exception carries the HTTP status the API answers with; views turn them
into {'error': message} responses.
"""
from rest_framework import status


class AllocationError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Allocation workflow error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidTransition(AllocationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'This request is no longer pending'


class UnitUnavailable(AllocationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Unit is not available'


class DuplicateRequest(AllocationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = 'A pending request already exists for this unit'


class ApprovalNotPermitted(AllocationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You are not allowed to approve or decline allocation requests'


class OTPInvalid(AllocationError):
    default_message = 'Invalid OTP code'


class OTPExpired(AllocationError):
    default_message = 'OTP code has expired, request a new one'


class OTPNotRequested(AllocationError):
    default_message = 'No OTP has been requested for this action'


class OTPLocked(AllocationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = 'Too many failed attempts, request a new OTP'


class OTPThrottled(AllocationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = 'An OTP was sent recently, wait before requesting another'
