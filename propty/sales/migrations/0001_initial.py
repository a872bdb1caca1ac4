import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('clients', '0001_initial'),
        ('marketers', '0001_initial'),
        ('projects', '0002_unit_client'),
    ]

    operations = [
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sale_number', models.CharField(max_length=100, unique=True)),
                ('sales_type', models.CharField(choices=[('offer_only', 'Offer Only'), ('offer_allocation', 'Offer and Allocation'), ('instant_allocation', 'Instant Allocation'), ('reservation', 'Reservation')], default='offer_only', max_length=20)),
                ('sale_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('initial_payment', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('sale_date', models.DateField(default=django.utils.timezone.localdate)),
                ('payment_method', models.CharField(blank=True, max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('declined', 'Declined'), ('allocated', 'Allocated'), ('paid', 'Paid'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('pipeline_stage', models.CharField(choices=[('lead', 'Lead'), ('inspection', 'Inspection'), ('offer', 'Offer'), ('allocation', 'Allocation'), ('paid', 'Paid')], default='offer', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sales', to='core.company')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales', to=settings.AUTH_USER_MODEL)),
                ('marketer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales', to='marketers.marketer')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='projects.project')),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='projects.unit')),
            ],
            options={
                'db_table': 'sales',
                'ordering': ['-sale_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['company', 'status'], name='idx_sale_company_status'),
                    models.Index(fields=['project', 'status'], name='idx_sale_project_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Allocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('allocation_number', models.CharField(max_length=100, unique=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('reallocated', 'Reallocated'), ('revoked', 'Revoked')], default='active', max_length=20)),
                ('allocation_date', models.DateField(default=django.utils.timezone.localdate)),
                ('revoked_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_allocations', to=settings.AUTH_USER_MODEL)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='core.company')),
                ('previous_allocation', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='next_allocation', to='sales.allocation')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='projects.project')),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocations', to='sales.sale')),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='projects.unit')),
            ],
            options={
                'db_table': 'allocations',
                'ordering': ['-allocation_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['company', 'status'], name='idx_allocation_company_status'),
                    models.Index(fields=['unit', 'status'], name='idx_allocation_unit_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AllocationRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_number', models.CharField(max_length=100, unique=True)),
                ('request_type', models.CharField(choices=[('allocation', 'Allocation'), ('reallocation', 'Reallocation'), ('revocation', 'Revocation')], max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('declined', 'Declined')], default='pending', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('reason_category', models.CharField(blank=True, choices=[('client_request', 'Client Request'), ('payment_default', 'Payment Default'), ('unit_swap', 'Unit Swap'), ('administrative', 'Administrative'), ('other', 'Other')], max_length=20)),
                ('reason', models.TextField(blank=True)),
                ('refund_type', models.CharField(blank=True, choices=[('full', 'Full Refund'), ('partial', 'Partial Refund'), ('none', 'No Refund')], max_length=10)),
                ('refund_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('effective_date', models.DateField(default=django.utils.timezone.localdate)),
                ('notes', models.TextField(blank=True)),
                ('submitted_at', models.DateTimeField(auto_now_add=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('decline_reason', models.TextField(blank=True)),
                ('allocation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='requests', to='sales.allocation')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocation_requests', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocation_requests', to='core.company')),
                ('new_client', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='incoming_reallocation_requests', to='clients.client')),
                ('new_unit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='incoming_reallocation_requests', to='projects.unit')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocation_requests', to='projects.project')),
                ('resulting_allocation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_by_requests', to='sales.allocation')),
                ('reviewed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_allocation_requests', to=settings.AUTH_USER_MODEL)),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocation_requests', to='sales.sale')),
                ('submitted_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='submitted_allocation_requests', to=settings.AUTH_USER_MODEL)),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocation_requests', to='projects.unit')),
            ],
            options={
                'db_table': 'allocation_requests',
                'ordering': ['-submitted_at'],
                'indexes': [
                    models.Index(fields=['company', 'status'], name='idx_allocreq_company_status'),
                    models.Index(fields=['unit', 'status'], name='idx_allocreq_unit_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AllocationOTP',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('approve', 'Approve'), ('decline', 'Decline')], max_length=10)),
                ('code_hash', models.CharField(max_length=128)),
                ('expires_at', models.DateTimeField()),
                ('attempts', models.PositiveSmallIntegerField(default=0)),
                ('consumed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('request', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='otps', to='sales.allocationrequest')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocation_otps', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'allocation_otps',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['request', 'user', 'action'], name='idx_otp_request_user_action')],
            },
        ),
        migrations.CreateModel(
            name='AllocationHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(choices=[('submitted', 'Submitted'), ('allocated', 'Allocated'), ('reallocated', 'Reallocated'), ('revoked', 'Revoked'), ('declined', 'Declined'), ('payment_received', 'Payment Received')], max_length=20)),
                ('description', models.TextField(blank=True)),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('previous_values', models.JSONField(blank=True, default=dict)),
                ('new_values', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('allocation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='history', to='sales.allocation')),
                ('client', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocation_history', to='clients.client')),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocation_history', to='core.company')),
                ('performed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocation_events', to=settings.AUTH_USER_MODEL)),
                ('request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='history', to='sales.allocationrequest')),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline', to='projects.unit')),
            ],
            options={
                'db_table': 'allocation_history',
                'ordering': ['-created_at', '-id'],
                'verbose_name_plural': 'allocation history',
            },
        ),
    ]
