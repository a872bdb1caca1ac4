from django.db import transaction
from rest_framework import serializers

from .models import Project, Block, Unit
from .utils import generate_block_units, WORKFLOW_STATUSES


class UnitSerializer(serializers.ModelSerializer):
    block_name = serializers.CharField(source='block.name', read_only=True)
    project_name = serializers.CharField(source='project.name', read_only=True)
    client_name = serializers.CharField(source='client.full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Unit
        fields = ['id', 'project', 'project_name', 'block', 'block_name', 'unit_number', 'unit_name', 'size',
                  'price', 'status', 'status_display', 'client', 'client_name', 'purpose', 'bedrooms',
                  'bathrooms', 'prototype', 'created_at', 'updated_at']
        read_only_fields = ['project', 'client', 'created_at', 'updated_at']

    def validate_status(self, value):
        # reserved and allocated belong to the sales workflow
        current = self.instance.status if self.instance else None
        if value == current:
            return value
        if current in WORKFLOW_STATUSES:
            raise serializers.ValidationError(
                f"Unit is {current}; its status changes only through sales and allocation requests"
            )
        if value in WORKFLOW_STATUSES:
            raise serializers.ValidationError(
                "Units can only be reserved or allocated through sales and allocation requests"
            )
        return value

    def validate_block(self, value):
        project = self.context.get('project') or (self.instance.project if self.instance else None)
        if value and project and value.project_id != project.id:
            raise serializers.ValidationError("Block does not belong to this project")
        return value


class BlockSerializer(serializers.ModelSerializer):
    total_units = serializers.IntegerField(write_only=True, required=False, min_value=0, max_value=1000)
    units_count = serializers.SerializerMethodField()

    class Meta:
        model = Block
        fields = ['id', 'project', 'name', 'block_type', 'description', 'status', 'default_price',
                  'default_size', 'default_prototype', 'structure_type', 'total_units', 'units_count',
                  'created_at', 'updated_at']
        read_only_fields = ['project', 'created_at', 'updated_at']

    def get_units_count(self, obj):
        if hasattr(obj, 'units_count'):
            return obj.units_count
        return obj.units.count()

    def validate_name(self, value):
        project = self.context.get('project') or (self.instance.project if self.instance else None)
        if project:
            duplicates = Block.objects.filter(project=project, name__iexact=value)
            if self.instance:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError("A block with this name already exists in the project")
        return value

    @transaction.atomic
    def create(self, validated_data):
        total_units = validated_data.pop('total_units', 0)
        block = super().create(validated_data)
        generate_block_units(block, total_units)
        return block

    def update(self, instance, validated_data):
        validated_data.pop('total_units', None)
        return super().update(instance, validated_data)


class ProjectSerializer(serializers.ModelSerializer):
    blocks = BlockSerializer(many=True, required=False)
    total_units = serializers.SerializerMethodField()
    available_units = serializers.SerializerMethodField()
    allocated_units = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = ['id', 'name', 'location', 'description', 'category', 'terminology_type', 'status',
                  'project_size', 'document_title', 'project_manager', 'tags', 'start_date',
                  'expected_completion', 'total_budget', 'contact_person', 'contact_phone', 'contact_email',
                  'blocks', 'total_units', 'available_units', 'allocated_units', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_total_units(self, obj):
        if hasattr(obj, 'total_units_count'):
            return obj.total_units_count
        return obj.units.count()

    def get_available_units(self, obj):
        if hasattr(obj, 'available_units_count'):
            return obj.available_units_count
        return obj.units.filter(status='available').count()

    def get_allocated_units(self, obj):
        if hasattr(obj, 'allocated_units_count'):
            return obj.allocated_units_count
        return obj.units.filter(status='allocated').count()

    def validate_blocks(self, value):
        names = [block['name'].strip().lower() for block in value]
        if len(names) != len(set(names)):
            raise serializers.ValidationError("Block names must be unique within a project")
        return value

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('expected_completion', getattr(self.instance, 'expected_completion', None))
        if start and end and end < start:
            raise serializers.ValidationError({'expected_completion': "Expected completion cannot be before the start date"})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        blocks_data = validated_data.pop('blocks', [])
        project = Project.objects.create(**validated_data)
        for block_data in blocks_data:
            total_units = block_data.pop('total_units', 0)
            block = Block.objects.create(project=project, **block_data)
            generate_block_units(block, total_units)
        return project

    def update(self, instance, validated_data):
        # Blocks are managed through their own endpoints once the project exists
        validated_data.pop('blocks', None)
        return super().update(instance, validated_data)


class ProjectListSerializer(ProjectSerializer):
    class Meta(ProjectSerializer.Meta):
        fields = [f for f in ProjectSerializer.Meta.fields if f != 'blocks']
