from django.contrib import admin
from .models import Client, ClientPayment


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'email', 'phone', 'company', 'status', 'referral_source', 'created_at']
    list_filter = ['status', 'client_type', 'referral_source', 'company']
    search_fields = ['first_name', 'last_name', 'email', 'phone', 'id_number']
    ordering = ['-created_at']


@admin.register(ClientPayment)
class ClientPaymentAdmin(admin.ModelAdmin):
    list_display = ['client', 'amount', 'payment_type', 'payment_method', 'status', 'due_date', 'paid_date']
    list_filter = ['status', 'payment_type', 'payment_method']
    search_fields = ['client__first_name', 'client__last_name', 'reference']
    ordering = ['-created_at']
    raw_id_fields = ['client', 'sale', 'unit']
