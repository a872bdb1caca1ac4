"""Utility functions for audit logging and document numbering"""
import logging

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger('propty.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     company=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, sale_record, request_approve, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., client name)
        object_reference: Reference identifier (e.g., sale or request number)
        company: Optional company override (defaults to the user's company)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        if audit_user is not None and not audit_user.is_authenticated:
            audit_user = None

        if company is None and audit_user is not None:
            company = audit_user.company

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            company=company,
            user=audit_user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def generate_document_number(model, field, prefix):
    """
    Generate the next sequential document number for today.

    Numbers look like PREFIX-YYYYMMDD-NNNN and restart every day. Callers run
    inside a transaction; uniqueness is still enforced by the column.
    """
    date_part = timezone.localdate().strftime('%Y%m%d')
    base = f"{prefix}-{date_part}-"

    max_number = 0
    for value in model.objects.filter(**{f'{field}__startswith': base}).values_list(field, flat=True):
        try:
            max_number = max(max_number, int(value.rsplit('-', 1)[-1]))
        except (ValueError, IndexError):
            continue

    return f"{base}{str(max_number + 1).zfill(4)}"
