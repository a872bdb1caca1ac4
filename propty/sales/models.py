from django.db import models
from decimal import Decimal
from django.utils import timezone
from propty.core.models import Company, User
from propty.clients.models import Client
from propty.projects.models import Project, Unit
from propty.marketers.models import Marketer


class Sale(models.Model):
    """A sale (offer) of a unit to a client"""
    SALES_TYPE_CHOICES = [
        ('offer_only', 'Offer Only'),
        ('offer_allocation', 'Offer and Allocation'),
        ('instant_allocation', 'Instant Allocation'),
        ('reservation', 'Reservation'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('declined', 'Declined'),
        ('allocated', 'Allocated'),
        ('paid', 'Paid'),
        ('cancelled', 'Cancelled'),
    ]

    PIPELINE_STAGE_CHOICES = [
        ('lead', 'Lead'),
        ('inspection', 'Inspection'),
        ('offer', 'Offer'),
        ('allocation', 'Allocation'),
        ('paid', 'Paid'),
    ]

    # Sales types that go straight into the allocation approval queue
    AUTO_ALLOCATION_TYPES = ('offer_allocation', 'instant_allocation')

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='sales')
    sale_number = models.CharField(max_length=100, unique=True)
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='sales')
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='sales')
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name='sales')
    marketer = models.ForeignKey(Marketer, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    sales_type = models.CharField(max_length=20, choices=SALES_TYPE_CHOICES, default='offer_only')
    sale_amount = models.DecimalField(max_digits=14, decimal_places=2)
    initial_payment = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    sale_date = models.DateField(default=timezone.localdate)
    payment_method = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    pipeline_stage = models.CharField(max_length=20, choices=PIPELINE_STAGE_CHOICES, default='offer')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='sales')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.sale_number

    class Meta:
        db_table = 'sales'
        ordering = ['-sale_date', '-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_sale_company_status'),
            models.Index(fields=['project', 'status'], name='idx_sale_project_status'),
        ]


class Allocation(models.Model):
    """Approved assignment of a unit to a client"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('reallocated', 'Reallocated'),
        ('revoked', 'Revoked'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='allocations')
    allocation_number = models.CharField(max_length=100, unique=True)
    sale = models.ForeignKey(Sale, on_delete=models.SET_NULL, null=True, blank=True, related_name='allocations')
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='allocations')
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='allocations')
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name='allocations')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    allocation_date = models.DateField(default=timezone.localdate)
    previous_allocation = models.OneToOneField('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='next_allocation')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_allocations')
    revoked_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.allocation_number

    class Meta:
        db_table = 'allocations'
        ordering = ['-allocation_date', '-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_allocation_company_status'),
            models.Index(fields=['unit', 'status'], name='idx_allocation_unit_status'),
        ]


class AllocationRequest(models.Model):
    """Allocation, reallocation or revocation awaiting OTP-verified approval"""
    TYPE_ALLOCATION = 'allocation'
    TYPE_REALLOCATION = 'reallocation'
    TYPE_REVOCATION = 'revocation'

    REQUEST_TYPE_CHOICES = [
        (TYPE_ALLOCATION, 'Allocation'),
        (TYPE_REALLOCATION, 'Reallocation'),
        (TYPE_REVOCATION, 'Revocation'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_DECLINED = 'declined'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_DECLINED, 'Declined'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
    ]

    REASON_CHOICES = [
        ('client_request', 'Client Request'),
        ('payment_default', 'Payment Default'),
        ('unit_swap', 'Unit Swap'),
        ('administrative', 'Administrative'),
        ('other', 'Other'),
    ]

    REFUND_TYPE_CHOICES = [
        ('full', 'Full Refund'),
        ('partial', 'Partial Refund'),
        ('none', 'No Refund'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='allocation_requests')
    request_number = models.CharField(max_length=100, unique=True)
    request_type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name='allocation_requests')
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name='allocation_requests')
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name='allocation_requests')
    sale = models.ForeignKey(Sale, on_delete=models.SET_NULL, null=True, blank=True, related_name='allocation_requests')
    allocation = models.ForeignKey(Allocation, on_delete=models.PROTECT, null=True, blank=True, related_name='requests')
    new_client = models.ForeignKey(Client, on_delete=models.PROTECT, null=True, blank=True, related_name='incoming_reallocation_requests')
    new_unit = models.ForeignKey(Unit, on_delete=models.PROTECT, null=True, blank=True, related_name='incoming_reallocation_requests')
    reason_category = models.CharField(max_length=20, choices=REASON_CHOICES, blank=True)
    reason = models.TextField(blank=True)
    refund_type = models.CharField(max_length=10, choices=REFUND_TYPE_CHOICES, blank=True)
    refund_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    effective_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)
    submitted_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='submitted_allocation_requests')
    submitted_at = models.DateTimeField(auto_now_add=True)
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='reviewed_allocation_requests')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    decline_reason = models.TextField(blank=True)
    resulting_allocation = models.ForeignKey(Allocation, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_by_requests')

    def __str__(self):
        return self.request_number

    @property
    def is_pending(self):
        return self.status == self.STATUS_PENDING

    class Meta:
        db_table = 'allocation_requests'
        ordering = ['-submitted_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_allocreq_company_status'),
            models.Index(fields=['unit', 'status'], name='idx_allocreq_unit_status'),
        ]


class AllocationOTP(models.Model):
    """One-time code an approver must present to approve or decline a request"""
    ACTION_CHOICES = [
        ('approve', 'Approve'),
        ('decline', 'Decline'),
    ]

    request = models.ForeignKey(AllocationRequest, on_delete=models.CASCADE, related_name='otps')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='allocation_otps')
    action = models.CharField(max_length=10, choices=ACTION_CHOICES)
    code_hash = models.CharField(max_length=128)
    expires_at = models.DateTimeField()
    attempts = models.PositiveSmallIntegerField(default=0)
    consumed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"OTP {self.action} {self.request_id} for {self.user_id}"

    def is_expired(self, now=None):
        return (now or timezone.now()) >= self.expires_at

    class Meta:
        db_table = 'allocation_otps'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['request', 'user', 'action'], name='idx_otp_request_user_action'),
        ]


class AllocationHistory(models.Model):
    """Timeline of allocation events per unit"""
    EVENT_CHOICES = [
        ('submitted', 'Submitted'),
        ('allocated', 'Allocated'),
        ('reallocated', 'Reallocated'),
        ('revoked', 'Revoked'),
        ('declined', 'Declined'),
        ('payment_received', 'Payment Received'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='allocation_history')
    allocation = models.ForeignKey(Allocation, on_delete=models.CASCADE, null=True, blank=True, related_name='history')
    request = models.ForeignKey(AllocationRequest, on_delete=models.CASCADE, null=True, blank=True, related_name='history')
    unit = models.ForeignKey(Unit, on_delete=models.CASCADE, related_name='timeline')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='allocation_history')
    event = models.CharField(max_length=20, choices=EVENT_CHOICES)
    description = models.TextField(blank=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    performed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='allocation_events')
    previous_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.unit} - {self.event}"

    class Meta:
        db_table = 'allocation_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'allocation history'
