from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class SettingCategory(models.TextChoices):
    BASIC_INFO = 'basic_info', 'Basic Information'
    PAYMENT = 'payment', 'Payment'
    NOTIFICATIONS = 'notifications', 'Notifications'
    STAFF = 'staff', 'Staff'


class SettingDataType(models.TextChoices):
    STRING = 'string', 'String'
    BOOLEAN = 'boolean', 'Boolean'
    NUMBER = 'number', 'Number'
    JSON = 'json', 'JSON'


class ClinicSetting(models.Model):
    """Single clinic configuration value stored as text with a type tag."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    setting_category = models.CharField(max_length=30, choices=SettingCategory.choices)
    setting_key = models.CharField(max_length=100)
    setting_value = models.TextField(blank=True)
    data_type = models.CharField(
        max_length=10,
        choices=SettingDataType.choices,
        default=SettingDataType.STRING
    )
    description = models.CharField(max_length=255, blank=True)
    is_required = models.BooleanField(default=False)

    updated_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic_settings'
        unique_together = [['setting_category', 'setting_key']]
        indexes = [
            models.Index(fields=['setting_category'], name='clinic_sett_category_idx'),
        ]
        ordering = ['setting_category', 'setting_key']

    def __str__(self):
        return f"{self.setting_category}.{self.setting_key}"


class Panel(models.Model):
    """Third-party payer (insurer, corporate panel) a price tier can map to."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=30, unique=True)
    contact_person = models.CharField(max_length=200, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=30, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'panels'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"


class TierType(models.TextChoices):
    STANDARD = 'standard', 'Standard'
    PANEL = 'panel', 'Panel'
    INSURANCE = 'insurance', 'Insurance'
    CORPORATE = 'corporate', 'Corporate'
    STAFF = 'staff', 'Staff'


class PriceTier(models.Model):
    """Named pricing profile mapped to payment methods and panels."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tier_name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    tier_type = models.CharField(
        max_length=20,
        choices=TierType.choices,
        default=TierType.STANDARD
    )
    payment_methods = models.JSONField(default=list, blank=True)
    panels = models.ManyToManyField(Panel, blank=True, related_name='price_tiers')
    requires_verification = models.BooleanField(default=False)
    coverage_rules = models.JSONField(default=dict, blank=True)
    eligibility_rules = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'price_tiers'
        ordering = ['tier_name']

    def __str__(self):
        return self.tier_name


class ServiceStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'


class MedicalService(models.Model):
    """Billable clinic service (consultation, procedure, test)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    cost_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=ServiceStatus.choices,
        default=ServiceStatus.ACTIVE
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medical_services'
        indexes = [
            models.Index(fields=['category', 'status'], name='medical_ser_cat_status_idx'),
        ]
        ordering = ['category', 'name']

    def __str__(self):
        return self.name


class ServicePricing(models.Model):
    """Price of a medical service under a specific tier."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    service = models.ForeignKey(
        MedicalService,
        on_delete=models.CASCADE,
        related_name='tier_prices'
    )
    tier = models.ForeignKey(
        PriceTier,
        on_delete=models.PROTECT,
        related_name='service_prices'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'service_pricing'
        unique_together = [['service', 'tier']]

    def __str__(self):
        return f"{self.service.name} @ {self.tier.tier_name}: {self.price}"


class DocumentTemplateType(models.TextChoices):
    MEDICAL_CERTIFICATE = 'medical_certificate', 'Medical certificate'
    MEDICAL_DOCUMENT = 'medical_document', 'Medical document'
    PRESCRIPTION_LETTER = 'prescription_letter', 'Prescription letter'
    MEDICAL_RECORDS = 'medical_records', 'Medical records'
    BILLINGS = 'billings', 'Billings'


class DocumentTemplate(models.Model):
    """Printable document with ``{{smart_field}}`` placeholders."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    template_name = models.CharField(max_length=200)
    template_type = models.CharField(max_length=30, choices=DocumentTemplateType.choices)
    description = models.TextField(blank=True)
    content = models.TextField()
    price_from = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    price_to = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    status = models.CharField(
        max_length=10,
        choices=ServiceStatus.choices,
        default=ServiceStatus.ACTIVE
    )

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'document_templates'
        indexes = [
            models.Index(fields=['template_type', 'status'], name='document_te_type_status_idx'),
        ]
        ordering = ['template_name']

    def __str__(self):
        return self.template_name
