from django.urls import path
from .views import (
    client_list_create, client_detail,
    client_payments, client_payment_mark_paid,
    client_allocations, client_summary, client_notices
)

urlpatterns = [
    # Client endpoints
    path('clients/', client_list_create, name='client-list-create'),
    path('clients/<int:pk>/', client_detail, name='client-detail'),
    path('clients/<int:pk>/summary/', client_summary, name='client-summary'),
    path('clients/<int:pk>/allocations/', client_allocations, name='client-allocations'),
    path('clients/<int:pk>/notices/', client_notices, name='client-notices'),

    # Payment endpoints
    path('clients/<int:pk>/payments/', client_payments, name='client-payments'),
    path('clients/<int:pk>/payments/<int:payment_pk>/mark-paid/', client_payment_mark_paid, name='client-payment-mark-paid'),
]
