from django.db import models
from decimal import Decimal
from propty.core.models import Company
from propty.projects.models import Project

COMMISSION_TYPE_CHOICES = [
    ('percentage', 'Percentage'),
    ('fixed', 'Fixed Amount'),
]


class Marketer(models.Model):
    """Marketers and sales agents earning commission on sales"""
    ROLE_CHOICES = [
        ('marketer', 'Marketer'),
        ('senior-marketer', 'Senior Marketer'),
        ('team-lead', 'Team Lead'),
        ('sales-agent', 'Sales Agent'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='marketers')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='marketer')
    commission_type = models.CharField(max_length=20, choices=COMMISSION_TYPE_CHOICES, default='percentage')
    commission_rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    start_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name

    class Meta:
        db_table = 'marketers'
        ordering = ['first_name', 'last_name']


class ProjectCommission(models.Model):
    """Per-project commission override for a marketer"""
    marketer = models.ForeignKey(Marketer, on_delete=models.CASCADE, related_name='project_commissions')
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='marketer_commissions')
    commission_type = models.CharField(max_length=20, choices=COMMISSION_TYPE_CHOICES, default='percentage')
    rate = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.marketer} - {self.project}: {self.rate}"

    class Meta:
        db_table = 'project_commissions'
        unique_together = [('marketer', 'project')]


class Commission(models.Model):
    """Commission earned by a marketer on a sale"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('paid', 'Paid'),
        ('cancelled', 'Cancelled'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='commissions')
    marketer = models.ForeignKey(Marketer, on_delete=models.CASCADE, related_name='commissions')
    sale = models.ForeignKey('sales.Sale', on_delete=models.CASCADE, related_name='commissions')
    client = models.ForeignKey('clients.Client', on_delete=models.SET_NULL, null=True, blank=True, related_name='commissions')
    project = models.ForeignKey(Project, on_delete=models.SET_NULL, null=True, blank=True, related_name='commissions')
    unit = models.ForeignKey('projects.Unit', on_delete=models.SET_NULL, null=True, blank=True, related_name='commissions')
    commission_type = models.CharField(max_length=20, choices=COMMISSION_TYPE_CHOICES, default='percentage')
    rate_snapshot = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.marketer} - {self.amount} ({self.status})"

    class Meta:
        db_table = 'commissions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_commission_company_status'),
        ]
