import django_filters
from django.db.models import Q

from .models import Sale, Allocation, AllocationRequest


class SaleFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')
    client = django_filters.NumberFilter(field_name='client_id', lookup_expr='exact')
    marketer = django_filters.NumberFilter(field_name='marketer_id', lookup_expr='exact')
    sales_type = django_filters.CharFilter(field_name='sales_type', lookup_expr='exact')
    date_from = django_filters.DateFilter(field_name='sale_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='sale_date', lookup_expr='lte')

    class Meta:
        model = Sale
        fields = ['search', 'status', 'project', 'client', 'marketer', 'sales_type', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sale_number__icontains=value) | Q(client__first_name__icontains=value) |
            Q(client__last_name__icontains=value) | Q(unit__unit_number__icontains=value) |
            Q(project__name__icontains=value)
        )


class AllocationFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')
    client = django_filters.NumberFilter(field_name='client_id', lookup_expr='exact')
    unit = django_filters.NumberFilter(field_name='unit_id', lookup_expr='exact')

    class Meta:
        model = Allocation
        fields = ['status', 'project', 'client', 'unit']


class AllocationRequestFilter(django_filters.FilterSet):
    """Filter for the approval queue; status defaults to pending in the view"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.CharFilter(field_name='request_type', lookup_expr='exact')
    priority = django_filters.CharFilter(field_name='priority', lookup_expr='exact')
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')

    class Meta:
        model = AllocationRequest
        fields = ['search', 'type', 'priority', 'project']

    def filter_search(self, queryset, name, value):
        """Client name, project name or unit number"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(client__first_name__icontains=value) | Q(client__last_name__icontains=value) |
            Q(new_client__first_name__icontains=value) | Q(new_client__last_name__icontains=value) |
            Q(project__name__icontains=value) | Q(unit__unit_number__icontains=value) |
            Q(request_number__icontains=value)
        )
