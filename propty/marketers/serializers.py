from decimal import Decimal

from rest_framework import serializers

from .models import Marketer, ProjectCommission, Commission


def validate_commission_terms(commission_type, rate, field='rate'):
    if rate is None:
        return
    if rate < 0:
        raise serializers.ValidationError({field: "Commission rate cannot be negative"})
    if commission_type == 'percentage' and rate > Decimal('100'):
        raise serializers.ValidationError({field: "Percentage commission cannot exceed 100"})


class MarketerSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Marketer
        fields = ['id', 'first_name', 'last_name', 'full_name', 'email', 'phone', 'role', 'commission_type',
                  'commission_rate', 'start_date', 'status', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        commission_type = attrs.get('commission_type', getattr(self.instance, 'commission_type', 'percentage'))
        rate = attrs.get('commission_rate', getattr(self.instance, 'commission_rate', None))
        validate_commission_terms(commission_type, rate, field='commission_rate')
        return attrs


class ProjectCommissionSerializer(serializers.ModelSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    marketer_name = serializers.CharField(source='marketer.full_name', read_only=True)

    class Meta:
        model = ProjectCommission
        fields = ['id', 'marketer', 'marketer_name', 'project', 'project_name', 'commission_type', 'rate',
                  'created_at', 'updated_at']
        read_only_fields = ['marketer', 'created_at', 'updated_at']

    def validate_project(self, value):
        company_id = self.context.get('company_id')
        if company_id and value.company_id != company_id:
            raise serializers.ValidationError("Project not found")
        return value

    def validate(self, attrs):
        validate_commission_terms(
            attrs.get('commission_type', getattr(self.instance, 'commission_type', 'percentage')),
            attrs.get('rate', getattr(self.instance, 'rate', None)),
        )
        return attrs


class CommissionSerializer(serializers.ModelSerializer):
    marketer_name = serializers.CharField(source='marketer.full_name', read_only=True)
    sale_number = serializers.CharField(source='sale.sale_number', read_only=True)
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)

    class Meta:
        model = Commission
        fields = ['id', 'marketer', 'marketer_name', 'sale', 'sale_number', 'client', 'client_name', 'project',
                  'project_name', 'unit', 'unit_number', 'commission_type', 'rate_snapshot', 'amount', 'status',
                  'paid_at', 'created_at', 'updated_at']
        read_only_fields = fields
