# Generated manually for inventory app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clinic', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Medication',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('generic_name', models.CharField(blank=True, max_length=200)),
                ('brand_name', models.CharField(blank=True, max_length=200)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('unit_of_measure', models.CharField(blank=True, default='unit', max_length=30)),
                ('strength_options', models.JSONField(blank=True, default=list)),
                ('dosage_forms', models.JSONField(blank=True, default=list)),
                ('remarks', models.TextField(blank=True)),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('average_cost', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=12)),
                ('stock_level', models.PositiveIntegerField(default=0)),
                ('reorder_level', models.PositiveIntegerField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'medications',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='MedicationPricing',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tier_prices', to='inventory.medication')),
                ('tier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='medication_prices', to='clinic.pricetier')),
            ],
            options={
                'db_table': 'medication_pricing',
                'unique_together': {('medication', 'tier')},
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('movement_type', models.CharField(choices=[('receipt', 'Receipt'), ('dispensed', 'Dispensed'), ('adjustment', 'Adjustment'), ('expired', 'Expired'), ('damaged', 'Damaged')], max_length=20)),
                ('quantity', models.IntegerField()),
                ('previous_stock', models.PositiveIntegerField()),
                ('new_stock', models.PositiveIntegerField()),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=12)),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('cost_per_unit_after', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('reference_number', models.CharField(blank=True, max_length=100)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('reason_code', models.CharField(blank=True, choices=[('count_error', 'Count error'), ('damaged', 'Damaged'), ('expired', 'Expired'), ('theft', 'Theft'), ('cycle_count', 'Cycle count'), ('system_error', 'System error'), ('other', 'Other')], max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_movements', to=settings.AUTH_USER_MODEL)),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_movements', to='inventory.medication')),
            ],
            options={
                'db_table': 'stock_movements',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ReorderSuggestion',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('current_stock', models.PositiveIntegerField()),
                ('suggested_quantity', models.PositiveIntegerField()),
                ('average_consumption_daily', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('cost_estimate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('priority_level', models.CharField(choices=[('urgent', 'Urgent'), ('high', 'High'), ('normal', 'Normal'), ('low', 'Low')], default='normal', max_length=10)),
                ('reason', models.CharField(choices=[('out_of_stock', 'Out of stock'), ('low_stock', 'Low stock'), ('high_consumption', 'High consumption')], default='low_stock', max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('ordered', 'Ordered'), ('dismissed', 'Dismissed')], default='pending', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('medication', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reorder_suggestions', to='inventory.medication')),
            ],
            options={
                'db_table': 'reorder_suggestions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='medication',
            index=models.Index(fields=['name'], name='medications_name_idx'),
        ),
        migrations.AddIndex(
            model_name='medication',
            index=models.Index(fields=['category', 'is_active'], name='medications_cat_active_idx'),
        ),
        migrations.AddIndex(
            model_name='medication',
            index=models.Index(fields=['stock_level'], name='medications_stock_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['medication', 'created_at'], name='stock_movem_med_created_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['movement_type', 'created_at'], name='stock_movem_type_created_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['medication', 'batch_number'], name='stock_movem_med_batch_idx'),
        ),
        migrations.AddIndex(
            model_name='stockmovement',
            index=models.Index(fields=['expiry_date'], name='stock_movem_expiry_idx'),
        ),
        migrations.AddIndex(
            model_name='reordersuggestion',
            index=models.Index(fields=['status', 'priority_level'], name='reorder_sug_status_prio_idx'),
        ),
    ]
