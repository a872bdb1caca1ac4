import django_filters
from django.db.models import Q

from .models import Marketer, Commission


class MarketerFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    role = django_filters.CharFilter(field_name='role', lookup_expr='exact')

    class Meta:
        model = Marketer
        fields = ['search', 'status', 'role']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=value) | Q(last_name__icontains=value) |
            Q(email__icontains=value) | Q(phone__icontains=value)
        )


class CommissionFilter(django_filters.FilterSet):
    marketer = django_filters.NumberFilter(field_name='marketer_id', lookup_expr='exact')
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')

    class Meta:
        model = Commission
        fields = ['marketer', 'project', 'status']
