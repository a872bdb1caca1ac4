from django.db import models
from propty.core.models import Company, User
from propty.clients.models import Client
from propty.projects.models import Project


class Notice(models.Model):
    """Notices sent to clients over one or more channels"""
    CHANNEL_EMAIL = 'email'
    CHANNEL_IN_APP = 'in_app'
    CHANNELS = [CHANNEL_EMAIL, CHANNEL_IN_APP]

    RECIPIENT_TYPE_CHOICES = [
        ('all', 'All Clients'),
        ('selected', 'Selected Clients'),
        ('project', 'Clients in Project'),
    ]

    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='notices')
    title = models.CharField(max_length=255)
    message = models.TextField()
    channels = models.JSONField(default=list)
    recipient_type = models.CharField(max_length=20, choices=RECIPIENT_TYPE_CHOICES, default='all')
    project = models.ForeignKey(Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='notices')
    recipients = models.ManyToManyField(Client, blank=True, related_name='selected_notices')
    attachment = models.FileField(upload_to='notices/', null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    recipient_count = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='created_notices')
    sent_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sent_notices')
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'notices'
        ordering = ['-created_at']


class NoticeDelivery(models.Model):
    """Delivery of one notice to one client over one channel"""
    STATUS_CHOICES = [
        ('delivered', 'Delivered'),
        ('failed', 'Failed'),
        ('skipped', 'Skipped'),
    ]

    notice = models.ForeignKey(Notice, on_delete=models.CASCADE, related_name='deliveries')
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='notice_deliveries')
    channel = models.CharField(max_length=20)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    error = models.TextField(blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.notice} -> {self.client} ({self.channel})"

    class Meta:
        db_table = 'notice_deliveries'
        ordering = ['-created_at']
        unique_together = [('notice', 'client', 'channel')]
