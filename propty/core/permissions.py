"""
Role checks and company scoping.

Roles are plain Django groups (see the create_user_groups command). Every
domain query goes through scope_to_company() so a user only ever sees rows
of their own company.
"""
from django.shortcuts import get_object_or_404
from rest_framework.permissions import BasePermission

from .conf import get_setting

ROLE_GROUPS = ['Director', 'Admin', 'Manager', 'Sales', 'Accountant']
ADMIN_GROUPS = ['Director', 'Admin']


def get_user_groups(user):
    if not user or not user.is_authenticated:
        return []
    return list(user.groups.values_list('name', flat=True))


def is_admin_user(user):
    """
    Check if user is a company administrator.
    Returns True if:
    - User is in 'Director' or 'Admin' group, OR
    - User is superuser/staff and not in any role group (fallback)
    """
    user_group_names = get_user_groups(user)
    if any(group in user_group_names for group in ADMIN_GROUPS):
        return True

    has_role_group = any(group in user_group_names for group in ROLE_GROUPS)
    if not has_role_group and (user.is_superuser or user.is_staff):
        return True

    return False


def can_approve_allocations(user):
    """Approvers are superusers or members of one of the APPROVER_GROUPS"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    approver_groups = get_setting('APPROVER_GROUPS')
    return user.groups.filter(name__in=approver_groups).exists()


def can_access_reports(user):
    user_group_names = get_user_groups(user)
    return is_admin_user(user) or 'Manager' in user_group_names or 'Accountant' in user_group_names


def scope_to_company(queryset, user, field='company'):
    """
    Restrict a queryset to the user's company.

    Platform superusers without a company see every company; any other user
    without a company sees nothing.
    """
    if user.is_superuser and not user.company_id:
        return queryset
    if not user.company_id:
        return queryset.none()
    return queryset.filter(**{f'{field}_id': user.company_id})


def get_company_object_or_404(queryset, user, field='company', **lookup):
    """get_object_or_404 that treats other companies' rows as missing"""
    return get_object_or_404(scope_to_company(queryset, user, field=field), **lookup)


class IsCompanyAdmin(BasePermission):
    message = 'Only company administrators can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_admin_user(request.user))


class IsPlatformSuperuser(BasePermission):
    message = 'Only platform administrators can manage companies.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_superuser)
