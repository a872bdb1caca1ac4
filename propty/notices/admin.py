from django.contrib import admin
from .models import Notice, NoticeDelivery


class NoticeDeliveryInline(admin.TabularInline):
    model = NoticeDelivery
    extra = 0
    readonly_fields = ['client', 'channel', 'status', 'error', 'delivered_at']


@admin.register(Notice)
class NoticeAdmin(admin.ModelAdmin):
    list_display = ['title', 'company', 'recipient_type', 'status', 'recipient_count', 'sent_at', 'created_at']
    list_filter = ['status', 'recipient_type', 'company']
    search_fields = ['title', 'message']
    ordering = ['-created_at']
    filter_horizontal = ['recipients']
    inlines = [NoticeDeliveryInline]
