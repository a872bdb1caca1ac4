from django.contrib import admin
from .models import Marketer, ProjectCommission, Commission


class ProjectCommissionInline(admin.TabularInline):
    model = ProjectCommission
    extra = 0


@admin.register(Marketer)
class MarketerAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'email', 'role', 'commission_type', 'commission_rate', 'status']
    list_filter = ['role', 'status', 'commission_type', 'company']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    ordering = ['first_name', 'last_name']
    inlines = [ProjectCommissionInline]


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ['marketer', 'sale', 'amount', 'status', 'paid_at', 'created_at']
    list_filter = ['status', 'commission_type']
    search_fields = ['marketer__first_name', 'marketer__last_name', 'sale__sale_number']
    ordering = ['-created_at']
    raw_id_fields = ['sale', 'client', 'unit']
