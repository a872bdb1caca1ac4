from decimal import Decimal

from rest_framework import serializers

from .models import Client, ClientPayment


class ClientSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    assigned_marketer_name = serializers.CharField(source='assigned_marketer.full_name', read_only=True)

    class Meta:
        model = Client
        fields = ['id', 'first_name', 'last_name', 'full_name', 'email', 'phone', 'date_of_birth', 'nationality',
                  'gender', 'marital_status', 'id_type', 'id_number', 'address', 'city', 'state', 'occupation',
                  'employer', 'referral_source', 'client_type', 'status', 'assigned_marketer',
                  'assigned_marketer_name', 'next_of_kin_name', 'next_of_kin_relationship', 'next_of_kin_phone',
                  'next_of_kin_email', 'next_of_kin_address', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_assigned_marketer(self, value):
        company_id = self.context.get('company_id')
        if value and company_id and value.company_id != company_id:
            raise serializers.ValidationError("Marketer not found")
        return value


class ClientListSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    assigned_marketer_name = serializers.CharField(source='assigned_marketer.full_name', read_only=True)
    units_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Client
        fields = ['id', 'first_name', 'last_name', 'full_name', 'email', 'phone', 'city', 'referral_source',
                  'client_type', 'status', 'assigned_marketer', 'assigned_marketer_name', 'units_count',
                  'created_at']


class ClientPaymentSerializer(serializers.ModelSerializer):
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    unit_number = serializers.CharField(source='unit.unit_number', read_only=True)
    sale_number = serializers.CharField(source='sale.sale_number', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = ClientPayment
        fields = ['id', 'client', 'client_name', 'sale', 'sale_number', 'project', 'project_name', 'unit',
                  'unit_number', 'amount', 'payment_method', 'payment_type', 'reference', 'status', 'due_date',
                  'paid_date', 'notes', 'created_by', 'created_by_username', 'created_at', 'updated_at']
        read_only_fields = ['client', 'created_by', 'created_at', 'updated_at']

    def validate_amount(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError("Amount must be greater than zero")
        return value

    def validate(self, attrs):
        client = self.context.get('client') or (self.instance.client if self.instance else None)
        project = attrs.get('project')
        unit = attrs.get('unit')
        sale = attrs.get('sale')

        for field, value in (('project', project), ('unit', unit), ('sale', sale)):
            if value is None or client is None:
                continue
            company_id = value.project.company_id if field == 'unit' else value.company_id
            if company_id != client.company_id:
                raise serializers.ValidationError({field: f"{field.capitalize()} not found"})

        if unit and project and unit.project_id != project.id:
            raise serializers.ValidationError({'unit': "Unit does not belong to the selected project"})
        if sale and client and sale.client_id != client.id:
            raise serializers.ValidationError({'sale': "Sale belongs to another client"})
        if sale:
            attrs.setdefault('project', sale.project)
            attrs.setdefault('unit', sale.unit)
        elif unit and not project:
            attrs['project'] = unit.project
        return attrs
