import django_filters
from django.db.models import Q

from .models import Client


class ClientFilter(django_filters.FilterSet):
    """Filter for the client list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    referral_source = django_filters.CharFilter(field_name='referral_source', lookup_expr='exact')
    client_type = django_filters.CharFilter(field_name='client_type', lookup_expr='exact')
    assigned_marketer = django_filters.NumberFilter(field_name='assigned_marketer_id', lookup_expr='exact')

    class Meta:
        model = Client
        fields = ['search', 'status', 'referral_source', 'client_type', 'assigned_marketer']

    def filter_search(self, queryset, name, value):
        """Match each word against names, email and phone"""
        words = [w for w in (value or '').split() if w]
        for word in words:
            queryset = queryset.filter(
                Q(first_name__icontains=word) | Q(last_name__icontains=word) |
                Q(email__icontains=word) | Q(phone__icontains=word)
            )
        return queryset
