from django.contrib import admin
from .models import Sale, Allocation, AllocationRequest, AllocationOTP, AllocationHistory


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_number', 'client', 'project', 'unit', 'sales_type', 'sale_amount', 'status', 'sale_date']
    list_filter = ['status', 'sales_type', 'pipeline_stage', 'company']
    search_fields = ['sale_number', 'client__first_name', 'client__last_name', 'unit__unit_number']
    ordering = ['-sale_date']
    raw_id_fields = ['client', 'unit']


@admin.register(Allocation)
class AllocationAdmin(admin.ModelAdmin):
    list_display = ['allocation_number', 'client', 'project', 'unit', 'status', 'allocation_date', 'approved_by']
    list_filter = ['status', 'company']
    search_fields = ['allocation_number', 'client__first_name', 'client__last_name', 'unit__unit_number']
    ordering = ['-allocation_date']
    raw_id_fields = ['sale', 'client', 'unit', 'previous_allocation']


@admin.register(AllocationRequest)
class AllocationRequestAdmin(admin.ModelAdmin):
    list_display = ['request_number', 'request_type', 'status', 'priority', 'client', 'unit', 'submitted_by', 'submitted_at']
    list_filter = ['request_type', 'status', 'priority', 'company']
    search_fields = ['request_number', 'client__first_name', 'client__last_name', 'unit__unit_number']
    ordering = ['-submitted_at']
    raw_id_fields = ['client', 'new_client', 'unit', 'new_unit', 'sale', 'allocation', 'resulting_allocation']
    # Status changes must go through the OTP-gated workflow
    readonly_fields = ['status', 'reviewed_by', 'reviewed_at', 'resulting_allocation']


@admin.register(AllocationOTP)
class AllocationOTPAdmin(admin.ModelAdmin):
    list_display = ['request', 'user', 'action', 'expires_at', 'attempts', 'consumed_at', 'created_at']
    list_filter = ['action']
    ordering = ['-created_at']
    readonly_fields = ['request', 'user', 'action', 'code_hash', 'expires_at', 'attempts', 'consumed_at', 'created_at']


@admin.register(AllocationHistory)
class AllocationHistoryAdmin(admin.ModelAdmin):
    list_display = ['unit', 'event', 'client', 'amount', 'performed_by', 'created_at']
    list_filter = ['event']
    search_fields = ['unit__unit_number', 'description']
    ordering = ['-created_at']
