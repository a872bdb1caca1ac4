from decimal import Decimal

from rest_framework import serializers

from propty.clients.models import Client
from propty.marketers.models import Marketer
from propty.projects.models import Project, Unit
from .models import Sale, Allocation, AllocationRequest, AllocationHistory
from .otp import OTP_ACTIONS


class SaleSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)
    marketer_name = serializers.CharField(source='marketer.full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Sale
        fields = ['id', 'sale_number', 'client', 'client_name', 'project', 'project_name', 'unit', 'unit_number',
                  'marketer', 'marketer_name', 'sales_type', 'sale_amount', 'initial_payment', 'sale_date',
                  'payment_method', 'status', 'status_display', 'pipeline_stage', 'notes', 'created_by',
                  'created_at', 'updated_at']
        read_only_fields = fields


class SaleUpdateSerializer(serializers.ModelSerializer):
    """Editable details of a recorded sale; status changes belong to the workflow"""
    class Meta:
        model = Sale
        fields = ['sale_date', 'payment_method', 'pipeline_stage', 'notes']

    def validate_pipeline_stage(self, value):
        if value == 'allocation' and self.instance and self.instance.status != 'allocated':
            raise serializers.ValidationError("Only approved allocations move a sale to the allocation stage")
        return value


class CompanyScopedSerializer(serializers.Serializer):
    """Rejects related objects of another company as if they did not exist"""

    def check_company(self, obj, label, company_id=None):
        if obj is None:
            return obj
        expected = self.context.get('company_id')
        actual = company_id if company_id is not None else obj.company_id
        if expected and actual != expected:
            raise serializers.ValidationError(f"{label} not found")
        return obj


class SaleCreateSerializer(CompanyScopedSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.select_related('project'))
    marketer = serializers.PrimaryKeyRelatedField(queryset=Marketer.objects.all(), required=False, allow_null=True)
    sales_type = serializers.ChoiceField(choices=Sale.SALES_TYPE_CHOICES, default='offer_only')
    sale_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=Decimal('0.01'))
    initial_payment = serializers.DecimalField(max_digits=14, decimal_places=2, required=False,
                                               min_value=Decimal('0.00'), default=Decimal('0.00'))
    sale_date = serializers.DateField(required=False)
    payment_method = serializers.CharField(max_length=20, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_client(self, value):
        return self.check_company(value, 'Client')

    def validate_project(self, value):
        return self.check_company(value, 'Project')

    def validate_unit(self, value):
        return self.check_company(value, 'Unit', company_id=value.project.company_id)

    def validate_marketer(self, value):
        if value is not None and value.status != 'active':
            raise serializers.ValidationError("Marketer is not active")
        return self.check_company(value, 'Marketer')

    def validate(self, attrs):
        if attrs['unit'].project_id != attrs['project'].id:
            raise serializers.ValidationError({'unit': "Unit does not belong to the selected project"})
        return attrs


class AllocationSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)
    sale_number = serializers.CharField(source='sale.sale_number', read_only=True)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True)
    previous_allocation_number = serializers.CharField(source='previous_allocation.allocation_number', read_only=True)

    class Meta:
        model = Allocation
        fields = ['id', 'allocation_number', 'sale', 'sale_number', 'client', 'client_name', 'project',
                  'project_name', 'unit', 'unit_number', 'status', 'allocation_date', 'previous_allocation',
                  'previous_allocation_number', 'approved_by', 'approved_by_username', 'revoked_at', 'notes',
                  'created_at', 'updated_at']
        read_only_fields = fields


class AllocationRequestSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    new_client_name = serializers.CharField(source='new_client.full_name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)
    new_unit_number = serializers.CharField(source='new_unit.unit_number', read_only=True)
    allocation_number = serializers.CharField(source='allocation.allocation_number', read_only=True)
    sale_number = serializers.CharField(source='sale.sale_number', read_only=True)
    submitted_by_username = serializers.CharField(source='submitted_by.username', read_only=True)
    reviewed_by_username = serializers.CharField(source='reviewed_by.username', read_only=True)
    resulting_allocation_number = serializers.CharField(source='resulting_allocation.allocation_number', read_only=True)

    class Meta:
        model = AllocationRequest
        fields = ['id', 'request_number', 'request_type', 'status', 'priority', 'client', 'client_name',
                  'new_client', 'new_client_name', 'project', 'project_name', 'unit', 'unit_number', 'new_unit',
                  'new_unit_number', 'allocation', 'allocation_number', 'sale', 'sale_number', 'reason_category',
                  'reason', 'refund_type', 'refund_amount', 'amount', 'effective_date', 'notes', 'submitted_by',
                  'submitted_by_username', 'submitted_at', 'reviewed_by', 'reviewed_by_username', 'reviewed_at',
                  'decline_reason', 'resulting_allocation', 'resulting_allocation_number']
        read_only_fields = fields


class AllocationHistorySerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)
    performed_by_username = serializers.CharField(source='performed_by.username', read_only=True)
    allocation_number = serializers.CharField(source='allocation.allocation_number', read_only=True)
    request_number = serializers.CharField(source='request.request_number', read_only=True)

    class Meta:
        model = AllocationHistory
        fields = ['id', 'allocation', 'allocation_number', 'request', 'request_number', 'unit', 'unit_number',
                  'client', 'client_name', 'event', 'description', 'amount', 'performed_by',
                  'performed_by_username', 'previous_values', 'new_values', 'created_at']
        read_only_fields = fields


class NewAllocationSerializer(CompanyScopedSerializer):
    client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    project = serializers.PrimaryKeyRelatedField(queryset=Project.objects.all())
    unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.select_related('project'))
    sale = serializers.PrimaryKeyRelatedField(queryset=Sale.objects.all(), required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=Decimal('0.00'))
    priority = serializers.ChoiceField(choices=AllocationRequest.PRIORITY_CHOICES, default='medium')
    effective_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_client(self, value):
        return self.check_company(value, 'Client')

    def validate_project(self, value):
        return self.check_company(value, 'Project')

    def validate_unit(self, value):
        return self.check_company(value, 'Unit', company_id=value.project.company_id)

    def validate_sale(self, value):
        return self.check_company(value, 'Sale')

    def validate(self, attrs):
        sale = attrs.get('sale')
        if sale and (sale.client_id != attrs['client'].id or sale.unit_id != attrs['unit'].id):
            raise serializers.ValidationError({'sale': "Sale does not match the client and unit"})
        return attrs


class ReallocationSerializer(CompanyScopedSerializer):
    new_client = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    new_unit = serializers.PrimaryKeyRelatedField(queryset=Unit.objects.select_related('project'), required=False,
                                                  allow_null=True)
    reason_category = serializers.ChoiceField(choices=AllocationRequest.REASON_CHOICES, required=False,
                                              allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=Decimal('0.00'))
    priority = serializers.ChoiceField(choices=AllocationRequest.PRIORITY_CHOICES, default='medium')
    effective_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_new_client(self, value):
        return self.check_company(value, 'Client')

    def validate_new_unit(self, value):
        if value is None:
            return value
        return self.check_company(value, 'Unit', company_id=value.project.company_id)


class RevocationSerializer(serializers.Serializer):
    reason = serializers.CharField()
    reason_category = serializers.ChoiceField(choices=AllocationRequest.REASON_CHOICES, required=False,
                                              allow_blank=True)
    refund_type = serializers.ChoiceField(choices=AllocationRequest.REFUND_TYPE_CHOICES, default='none')
    refund_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=AllocationRequest.PRIORITY_CHOICES, default='medium')
    effective_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class OTPRequestSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=OTP_ACTIONS, default='approve')


class ApproveSerializer(serializers.Serializer):
    otp_code = serializers.CharField(max_length=12)


class DeclineSerializer(serializers.Serializer):
    otp_code = serializers.CharField(max_length=12)
    reason = serializers.CharField()
