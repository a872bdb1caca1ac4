from django.db import models
from propty.core.models import Company, User
from propty.marketers.models import Marketer


class Client(models.Model):
    """Property buyers"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('prospect', 'Prospect'),
        ('lead', 'Lead'),
    ]

    CLIENT_TYPE_CHOICES = [
        ('individual', 'Individual'),
        ('corporate', 'Corporate'),
    ]

    REFERRAL_SOURCE_CHOICES = [
        ('website', 'Website'),
        ('referral', 'Referral'),
        ('social-media', 'Social Media'),
        ('advertisement', 'Advertisement'),
        ('walk-in', 'Walk-in'),
        ('other', 'Other'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='clients')
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=20)
    date_of_birth = models.DateField(null=True, blank=True)
    nationality = models.CharField(max_length=100, blank=True)
    gender = models.CharField(max_length=20, blank=True)
    marital_status = models.CharField(max_length=20, blank=True)
    id_type = models.CharField(max_length=50, blank=True)
    id_number = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    occupation = models.CharField(max_length=150, blank=True)
    employer = models.CharField(max_length=200, blank=True)
    referral_source = models.CharField(max_length=20, choices=REFERRAL_SOURCE_CHOICES, default='other')
    client_type = models.CharField(max_length=20, choices=CLIENT_TYPE_CHOICES, default='individual')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    assigned_marketer = models.ForeignKey(Marketer, on_delete=models.SET_NULL, null=True, blank=True, related_name='clients')
    next_of_kin_name = models.CharField(max_length=200, blank=True)
    next_of_kin_relationship = models.CharField(max_length=100, blank=True)
    next_of_kin_phone = models.CharField(max_length=20, blank=True)
    next_of_kin_email = models.EmailField(blank=True)
    next_of_kin_address = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name

    class Meta:
        db_table = 'clients'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_client_company_status'),
        ]


class ClientPayment(models.Model):
    """Payments received from (or refunds owed to) a client"""
    PAYMENT_METHOD_CHOICES = [
        ('bank-transfer', 'Bank Transfer'),
        ('cash', 'Cash'),
        ('check', 'Check'),
        ('card', 'Card'),
        ('mobile-money', 'Mobile Money'),
    ]

    PAYMENT_TYPE_CHOICES = [
        ('deposit', 'Deposit'),
        ('instalment', 'Instalment'),
        ('full-payment', 'Full Payment'),
        ('fee', 'Fee'),
        ('refund', 'Refund'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('cancelled', 'Cancelled'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='client_payments')
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='payments')
    sale = models.ForeignKey('sales.Sale', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    project = models.ForeignKey('projects.Project', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    unit = models.ForeignKey('projects.Unit', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='bank-transfer')
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES, default='instalment')
    reference = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    due_date = models.DateField(null=True, blank=True)
    paid_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='client_payments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.client} - {self.payment_type} - {self.amount}"

    class Meta:
        db_table = 'client_payments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['client', 'status'], name='idx_payment_client_status'),
        ]
