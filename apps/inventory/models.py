from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


DEFAULT_LOW_STOCK_THRESHOLD = 10


class Medication(models.Model):
    """Stocked medication with base cost and running average cost."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    generic_name = models.CharField(max_length=200, blank=True)
    brand_name = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=100, blank=True)
    unit_of_measure = models.CharField(max_length=30, blank=True, default='unit')
    strength_options = models.JSONField(default=list, blank=True)
    dosage_forms = models.JSONField(default=list, blank=True)
    remarks = models.TextField(blank=True)

    # Costing
    cost_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    average_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal('0.0000')
    )

    # Stock
    stock_level = models.PositiveIntegerField(default=0)
    reorder_level = models.PositiveIntegerField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medications'
        indexes = [
            models.Index(fields=['name'], name='medications_name_idx'),
            models.Index(fields=['category', 'is_active'], name='medications_cat_active_idx'),
            models.Index(fields=['stock_level'], name='medications_stock_idx'),
        ]
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def low_stock_threshold(self):
        """Reorder level when set, otherwise the clinic-wide default."""
        return self.reorder_level or DEFAULT_LOW_STOCK_THRESHOLD

    @property
    def is_out_of_stock(self):
        return self.stock_level == 0

    @property
    def is_low_stock(self):
        return 0 < self.stock_level <= self.low_stock_threshold

    @property
    def stock_value(self):
        return self.cost_price * self.stock_level


class MedicationPricing(models.Model):
    """Selling price of a medication under a price tier."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication = models.ForeignKey(
        Medication,
        on_delete=models.CASCADE,
        related_name='tier_prices'
    )
    tier = models.ForeignKey(
        'clinic.PriceTier',
        on_delete=models.PROTECT,
        related_name='medication_prices'
    )
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medication_pricing'
        unique_together = [['medication', 'tier']]

    def __str__(self):
        return f"{self.medication.name} @ {self.tier.tier_name}: {self.price}"


class MovementType(models.TextChoices):
    RECEIPT = 'receipt', 'Receipt'
    DISPENSED = 'dispensed', 'Dispensed'
    ADJUSTMENT = 'adjustment', 'Adjustment'
    EXPIRED = 'expired', 'Expired'
    DAMAGED = 'damaged', 'Damaged'


OUTGOING_MOVEMENT_TYPES = (
    MovementType.DISPENSED,
    MovementType.EXPIRED,
    MovementType.DAMAGED,
)


class AdjustmentReason(models.TextChoices):
    COUNT_ERROR = 'count_error', 'Count error'
    DAMAGED = 'damaged', 'Damaged'
    EXPIRED = 'expired', 'Expired'
    THEFT = 'theft', 'Theft'
    CYCLE_COUNT = 'cycle_count', 'Cycle count'
    SYSTEM_ERROR = 'system_error', 'System error'
    OTHER = 'other', 'Other'


class StockMovement(models.Model):
    """
    Recorded change in quantity-on-hand.

    ``quantity`` is positive for receipts and outgoing movements; for
    adjustments it carries the sign of the change.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication = models.ForeignKey(
        Medication,
        on_delete=models.CASCADE,
        related_name='stock_movements'
    )
    movement_type = models.CharField(max_length=20, choices=MovementType.choices)
    quantity = models.IntegerField()
    previous_stock = models.PositiveIntegerField()
    new_stock = models.PositiveIntegerField()

    # Costing
    unit_cost = models.DecimalField(max_digits=12, decimal_places=4, default=Decimal('0.0000'))
    total_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    cost_per_unit_after = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True
    )

    # Context
    reference_number = models.CharField(max_length=100, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    reason_code = models.CharField(
        max_length=20,
        choices=AdjustmentReason.choices,
        blank=True
    )
    notes = models.TextField(blank=True)

    # Batch tracking
    batch_number = models.CharField(max_length=100, blank=True)
    expiry_date = models.DateField(null=True, blank=True)

    purchase_order = models.ForeignKey(
        'procurement.PurchaseOrder',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements'
    )

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'stock_movements'
        indexes = [
            models.Index(fields=['medication', 'created_at'], name='stock_movem_med_created_idx'),
            models.Index(fields=['movement_type', 'created_at'], name='stock_movem_type_created_idx'),
            models.Index(fields=['medication', 'batch_number'], name='stock_movem_med_batch_idx'),
            models.Index(fields=['expiry_date'], name='stock_movem_expiry_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.movement_type} {self.quantity} x {self.medication.name}"

    @property
    def delta(self):
        """Signed change this movement applies to stock-on-hand."""
        if self.movement_type == MovementType.RECEIPT:
            return self.quantity
        if self.movement_type in OUTGOING_MOVEMENT_TYPES:
            return -self.quantity
        return self.quantity


class SuggestionPriority(models.TextChoices):
    URGENT = 'urgent', 'Urgent'
    HIGH = 'high', 'High'
    NORMAL = 'normal', 'Normal'
    LOW = 'low', 'Low'


class SuggestionStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    ORDERED = 'ordered', 'Ordered'
    DISMISSED = 'dismissed', 'Dismissed'


class SuggestionReason(models.TextChoices):
    OUT_OF_STOCK = 'out_of_stock', 'Out of stock'
    LOW_STOCK = 'low_stock', 'Low stock'
    HIGH_CONSUMPTION = 'high_consumption', 'High consumption'


class ReorderSuggestion(models.Model):
    """Generated proposal to reorder a medication."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    medication = models.ForeignKey(
        Medication,
        on_delete=models.CASCADE,
        related_name='reorder_suggestions'
    )
    current_stock = models.PositiveIntegerField()
    suggested_quantity = models.PositiveIntegerField()
    average_consumption_daily = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00')
    )
    cost_estimate = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00')
    )
    priority_level = models.CharField(
        max_length=10,
        choices=SuggestionPriority.choices,
        default=SuggestionPriority.NORMAL
    )
    reason = models.CharField(
        max_length=20,
        choices=SuggestionReason.choices,
        default=SuggestionReason.LOW_STOCK
    )
    supplier = models.ForeignKey(
        'procurement.Supplier',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reorder_suggestions'
    )
    status = models.CharField(
        max_length=10,
        choices=SuggestionStatus.choices,
        default=SuggestionStatus.PENDING
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'reorder_suggestions'
        indexes = [
            models.Index(fields=['status', 'priority_level'], name='reorder_sug_status_prio_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Reorder {self.suggested_quantity} x {self.medication.name} ({self.priority_level})"
