from django.db import models
from decimal import Decimal
from propty.core.models import Company


class Project(models.Model):
    """Estates and developments"""
    STATUS_CHOICES = [
        ('Acquisition', 'Acquisition'),
        ('Documentation', 'Documentation'),
        ('Planning', 'Planning'),
        ('Construction', 'Construction'),
        ('Presale', 'Presale'),
        ('Selling', 'Selling'),
        ('Pause Sales', 'Pause Sales'),
        ('Sold Out', 'Sold Out'),
    ]

    CATEGORY_CHOICES = [
        ('Land', 'Land'),
        ('Housing', 'Housing'),
        ('Mixed', 'Mixed'),
    ]

    TERMINOLOGY_CHOICES = [
        ('plots', 'Plots'),
        ('units', 'Units'),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='projects')
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='Land')
    terminology_type = models.CharField(max_length=10, choices=TERMINOLOGY_CHOICES, default='plots')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='Planning')
    project_size = models.CharField(max_length=100, blank=True)
    document_title = models.CharField(max_length=200, blank=True)
    project_manager = models.CharField(max_length=200, blank=True)
    tags = models.CharField(max_length=255, blank=True)
    start_date = models.DateField(null=True, blank=True)
    expected_completion = models.DateField(null=True, blank=True)
    total_budget = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    contact_person = models.CharField(max_length=200, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    contact_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['company', 'status'], name='idx_project_company_status'),
        ]


class Block(models.Model):
    """Blocks (phases/streets) inside a project"""
    BLOCK_TYPE_CHOICES = [
        ('duplex', 'Duplex'),
        ('bungalow', 'Bungalow'),
        ('apartment', 'Apartment'),
        ('commercial', 'Commercial'),
        ('land', 'Land'),
        ('utility', 'Utility'),
    ]

    STATUS_CHOICES = [
        ('planning', 'Planning'),
        ('construction', 'Construction'),
        ('completed', 'Completed'),
        ('on-hold', 'On Hold'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='blocks')
    name = models.CharField(max_length=100)
    block_type = models.CharField(max_length=20, choices=BLOCK_TYPE_CHOICES, default='land')
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='planning')
    default_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    default_size = models.CharField(max_length=50, blank=True)
    default_prototype = models.CharField(max_length=100, blank=True)
    structure_type = models.CharField(max_length=10, choices=Project.TERMINOLOGY_CHOICES, default='plots')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.project.name} - {self.name}"

    class Meta:
        db_table = 'blocks'
        ordering = ['name']
        unique_together = [('project', 'name')]


class Unit(models.Model):
    """Units (housing) or plots (land) that can be sold and allocated"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('reserved', 'Reserved'),
        ('allocated', 'Allocated'),
        ('sold', 'Sold'),
    ]

    PURPOSE_CHOICES = [
        ('developing', 'Developing'),
        ('land-banking', 'Land Banking'),
        ('investment', 'Investment'),
    ]

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='units')
    block = models.ForeignKey(Block, on_delete=models.SET_NULL, null=True, blank=True, related_name='units')
    unit_number = models.CharField(max_length=100)
    size = models.CharField(max_length=50, blank=True)
    price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')
    client = models.ForeignKey('clients.Client', on_delete=models.SET_NULL, null=True, blank=True, related_name='units')
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES, blank=True)
    unit_name = models.CharField(max_length=200, blank=True)
    bedrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    bathrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    prototype = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.project.name} - {self.unit_number}"

    class Meta:
        db_table = 'units'
        ordering = ['unit_number']
        unique_together = [('project', 'unit_number')]
        indexes = [
            models.Index(fields=['project', 'status'], name='idx_unit_project_status'),
        ]
