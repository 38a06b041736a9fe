# Generated manually for clinic configuration

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


SERVICE_STATUS_CHOICES = [('active', 'Active'), ('inactive', 'Inactive')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ClinicSetting',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('setting_category', models.CharField(choices=[('basic_info', 'Basic Information'), ('payment', 'Payment'), ('notifications', 'Notifications'), ('staff', 'Staff')], max_length=30)),
                ('setting_key', models.CharField(max_length=100)),
                ('setting_value', models.TextField(blank=True)),
                ('data_type', models.CharField(choices=[('string', 'String'), ('boolean', 'Boolean'), ('number', 'Number'), ('json', 'JSON')], default='string', max_length=10)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('is_required', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'clinic_settings',
                'ordering': ['setting_category', 'setting_key'],
                'unique_together': {('setting_category', 'setting_key')},
            },
        ),
        migrations.CreateModel(
            name='Panel',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('code', models.CharField(max_length=30, unique=True)),
                ('contact_person', models.CharField(blank=True, max_length=200)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('contact_phone', models.CharField(blank=True, max_length=30)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'panels',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='PriceTier',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tier_name', models.CharField(max_length=100, unique=True)),
                ('description', models.TextField(blank=True)),
                ('tier_type', models.CharField(choices=[('standard', 'Standard'), ('panel', 'Panel'), ('insurance', 'Insurance'), ('corporate', 'Corporate'), ('staff', 'Staff')], default='standard', max_length=20)),
                ('payment_methods', models.JSONField(blank=True, default=list)),
                ('requires_verification', models.BooleanField(default=False)),
                ('coverage_rules', models.JSONField(blank=True, default=dict)),
                ('eligibility_rules', models.JSONField(blank=True, default=dict)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('panels', models.ManyToManyField(blank=True, related_name='price_tiers', to='clinic.panel')),
            ],
            options={
                'db_table': 'price_tiers',
                'ordering': ['tier_name'],
            },
        ),
        migrations.CreateModel(
            name='MedicalService',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('description', models.TextField(blank=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('duration_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('status', models.CharField(choices=SERVICE_STATUS_CHOICES, default='active', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'medical_services',
                'ordering': ['category', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ServicePricing',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tier_prices', to='clinic.medicalservice')),
                ('tier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='service_prices', to='clinic.pricetier')),
            ],
            options={
                'db_table': 'service_pricing',
                'unique_together': {('service', 'tier')},
            },
        ),
        migrations.CreateModel(
            name='DocumentTemplate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('template_name', models.CharField(max_length=200)),
                ('template_type', models.CharField(choices=[('medical_certificate', 'Medical certificate'), ('medical_document', 'Medical document'), ('prescription_letter', 'Prescription letter'), ('medical_records', 'Medical records'), ('billings', 'Billings')], max_length=30)),
                ('description', models.TextField(blank=True)),
                ('content', models.TextField()),
                ('price_from', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[MinValueValidator(Decimal('0.00'))])),
                ('price_to', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[MinValueValidator(Decimal('0.00'))])),
                ('status', models.CharField(choices=SERVICE_STATUS_CHOICES, default='active', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'document_templates',
                'ordering': ['template_name'],
            },
        ),
        migrations.AddIndex(
            model_name='clinicsetting',
            index=models.Index(fields=['setting_category'], name='clinic_sett_category_idx'),
        ),
        migrations.AddIndex(
            model_name='medicalservice',
            index=models.Index(fields=['category', 'status'], name='medical_ser_cat_status_idx'),
        ),
        migrations.AddIndex(
            model_name='documenttemplate',
            index=models.Index(fields=['template_type', 'status'], name='document_te_type_status_idx'),
        ),
    ]
