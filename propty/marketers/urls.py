from django.urls import path
from .views import (
    marketer_list_create, marketer_detail,
    marketer_commissions, marketer_allocations, marketer_project_commissions,
    commission_list, commission_approve, commission_mark_paid
)

urlpatterns = [
    # Marketer endpoints
    path('marketers/', marketer_list_create, name='marketer-list-create'),
    path('marketers/<int:pk>/', marketer_detail, name='marketer-detail'),
    path('marketers/<int:pk>/commissions/', marketer_commissions, name='marketer-commissions'),
    path('marketers/<int:pk>/allocations/', marketer_allocations, name='marketer-allocations'),
    path('marketers/<int:pk>/project-commissions/', marketer_project_commissions, name='marketer-project-commissions'),

    # Commission endpoints
    path('commissions/', commission_list, name='commission-list'),
    path('commissions/<int:pk>/approve/', commission_approve, name='commission-approve'),
    path('commissions/<int:pk>/mark-paid/', commission_mark_paid, name='commission-mark-paid'),
]
