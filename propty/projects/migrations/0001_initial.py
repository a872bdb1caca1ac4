import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Project',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('location', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(choices=[('Land', 'Land'), ('Housing', 'Housing'), ('Mixed', 'Mixed')], default='Land', max_length=20)),
                ('terminology_type', models.CharField(choices=[('plots', 'Plots'), ('units', 'Units')], default='plots', max_length=10)),
                ('status', models.CharField(choices=[('Acquisition', 'Acquisition'), ('Documentation', 'Documentation'), ('Planning', 'Planning'), ('Construction', 'Construction'), ('Presale', 'Presale'), ('Selling', 'Selling'), ('Pause Sales', 'Pause Sales'), ('Sold Out', 'Sold Out')], default='Planning', max_length=20)),
                ('project_size', models.CharField(blank=True, max_length=100)),
                ('document_title', models.CharField(blank=True, max_length=200)),
                ('project_manager', models.CharField(blank=True, max_length=200)),
                ('tags', models.CharField(blank=True, max_length=255)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('expected_completion', models.DateField(blank=True, null=True)),
                ('total_budget', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=16)),
                ('contact_person', models.CharField(blank=True, max_length=200)),
                ('contact_phone', models.CharField(blank=True, max_length=20)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='projects', to='core.company')),
            ],
            options={
                'db_table': 'projects',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['company', 'status'], name='idx_project_company_status')],
            },
        ),
        migrations.CreateModel(
            name='Block',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('block_type', models.CharField(choices=[('duplex', 'Duplex'), ('bungalow', 'Bungalow'), ('apartment', 'Apartment'), ('commercial', 'Commercial'), ('land', 'Land'), ('utility', 'Utility')], default='land', max_length=20)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('planning', 'Planning'), ('construction', 'Construction'), ('completed', 'Completed'), ('on-hold', 'On Hold')], default='planning', max_length=20)),
                ('default_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('default_size', models.CharField(blank=True, max_length=50)),
                ('default_prototype', models.CharField(blank=True, max_length=100)),
                ('structure_type', models.CharField(choices=[('plots', 'Plots'), ('units', 'Units')], default='plots', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blocks', to='projects.project')),
            ],
            options={
                'db_table': 'blocks',
                'ordering': ['name'],
                'unique_together': {('project', 'name')},
            },
        ),
        migrations.CreateModel(
            name='Unit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unit_number', models.CharField(max_length=100)),
                ('size', models.CharField(blank=True, max_length=50)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('status', models.CharField(choices=[('available', 'Available'), ('reserved', 'Reserved'), ('allocated', 'Allocated'), ('sold', 'Sold')], default='available', max_length=20)),
                ('purpose', models.CharField(blank=True, choices=[('developing', 'Developing'), ('land-banking', 'Land Banking'), ('investment', 'Investment')], max_length=20)),
                ('unit_name', models.CharField(blank=True, max_length=200)),
                ('bedrooms', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('bathrooms', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('prototype', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('block', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='units', to='projects.block')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='units', to='projects.project')),
            ],
            options={
                'db_table': 'units',
                'ordering': ['unit_number'],
                'unique_together': {('project', 'unit_number')},
                'indexes': [models.Index(fields=['project', 'status'], name='idx_unit_project_status')],
            },
        ),
    ]
