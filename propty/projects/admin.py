from django.contrib import admin
from .models import Project, Block, Unit


class BlockInline(admin.TabularInline):
    model = Block
    extra = 0
    fields = ['name', 'block_type', 'status', 'default_price', 'default_size']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'company', 'location', 'category', 'status', 'created_at']
    list_filter = ['status', 'category', 'company', 'created_at']
    search_fields = ['name', 'location', 'tags']
    ordering = ['-created_at']
    inlines = [BlockInline]


@admin.register(Block)
class BlockAdmin(admin.ModelAdmin):
    list_display = ['name', 'project', 'block_type', 'status', 'default_price']
    list_filter = ['block_type', 'status']
    search_fields = ['name', 'project__name']
    ordering = ['project', 'name']


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ['unit_number', 'project', 'block', 'price', 'status', 'client']
    list_filter = ['status', 'purpose', 'project']
    search_fields = ['unit_number', 'unit_name', 'project__name']
    ordering = ['project', 'unit_number']
    raw_id_fields = ['client']
