import django_filters
from django.db.models import Q

from .models import Project, Unit


class ProjectFilter(django_filters.FilterSet):
    """Filter for the project list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='iexact')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    location = django_filters.CharFilter(field_name='location', lookup_expr='icontains')
    # Price range matches projects having at least one unit in range
    price_min = django_filters.NumberFilter(method='filter_price_min', label='Minimum unit price')
    price_max = django_filters.NumberFilter(method='filter_price_max', label='Maximum unit price')

    class Meta:
        model = Project
        fields = ['search', 'status', 'category', 'location', 'price_min', 'price_max']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(location__icontains=value) |
            Q(description__icontains=value) | Q(tags__icontains=value)
        )

    def filter_price_min(self, queryset, name, value):
        return queryset.filter(units__price__gte=value).distinct()

    def filter_price_max(self, queryset, name, value):
        return queryset.filter(units__price__lte=value).distinct()


class UnitFilter(django_filters.FilterSet):
    """Filter for unit and plot lists"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    block = django_filters.NumberFilter(field_name='block_id', lookup_expr='exact')
    project = django_filters.NumberFilter(field_name='project_id', lookup_expr='exact')
    price_min = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    price_max = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = Unit
        fields = ['search', 'status', 'block', 'project', 'price_min', 'price_max']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(unit_number__icontains=value) | Q(unit_name__icontains=value) |
            Q(client__first_name__icontains=value) | Q(client__last_name__icontains=value)
        )
