from django.urls import path
from .views import (
    sale_list_create, sale_detail, sales_summary, pending_allocations,
    allocation_list, allocation_detail, allocation_history, allocation_transfers,
    allocation_new, allocation_reallocate, allocation_revoke,
    allocation_request_list, allocation_request_detail, allocation_request_otp,
    allocation_request_approve, allocation_request_decline
)

urlpatterns = [
    # Sale endpoints
    path('sales/', sale_list_create, name='sale-list-create'),
    path('sales/summary/', sales_summary, name='sales-summary'),
    path('sales/pending-allocations/', pending_allocations, name='sales-pending-allocations'),
    path('sales/<int:pk>/', sale_detail, name='sale-detail'),

    # Allocation endpoints
    path('allocations/', allocation_list, name='allocation-list'),
    path('allocations/new/', allocation_new, name='allocation-new'),
    path('allocations/transfers/', allocation_transfers, name='allocation-transfers'),
    path('allocations/<int:pk>/', allocation_detail, name='allocation-detail'),
    path('allocations/<int:pk>/history/', allocation_history, name='allocation-history'),
    path('allocations/<int:pk>/reallocate/', allocation_reallocate, name='allocation-reallocate'),
    path('allocations/<int:pk>/revoke/', allocation_revoke, name='allocation-revoke'),

    # Approval queue endpoints
    path('allocation-requests/', allocation_request_list, name='allocation-request-list'),
    path('allocation-requests/<int:pk>/', allocation_request_detail, name='allocation-request-detail'),
    path('allocation-requests/<int:pk>/request-otp/', allocation_request_otp, name='allocation-request-otp'),
    path('allocation-requests/<int:pk>/approve/', allocation_request_approve, name='allocation-request-approve'),
    path('allocation-requests/<int:pk>/decline/', allocation_request_decline, name='allocation-request-decline'),
]
