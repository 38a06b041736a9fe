from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from apps.clinic.serializers import TierPriceMixin
from .models import (
    Medication,
    MedicationPricing,
    StockMovement,
    MovementType,
    AdjustmentReason,
    ReorderSuggestion,
    SuggestionStatus,
)
from .services.batch_tracking import EXPIRED, EXPIRING_SOON, WARNING, GOOD, BATCH_SORT_KEYS


# =============================================================================
# Input Serializers
# =============================================================================

class MedicationFilterSerializer(serializers.Serializer):
    """Validates query parameters for the medication list."""

    search = serializers.CharField(max_length=100, required=False)
    category = serializers.CharField(max_length=100, required=False)
    low_stock = serializers.BooleanField(required=False)
    include_inactive = serializers.BooleanField(required=False, default=False)


class MedicationInputSerializer(serializers.Serializer):
    """Input for creating or updating a medication."""

    name = serializers.CharField(max_length=200)
    generic_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    brand_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    unit_of_measure = serializers.CharField(max_length=30, required=False, allow_blank=True)
    strength_options = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )
    dosage_forms = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )
    remarks = serializers.CharField(required=False, allow_blank=True)
    cost_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    reorder_level = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    pricing = serializers.DictField(
        child=serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0),
        required=False
    )

    # Create only
    opening_stock = serializers.IntegerField(min_value=0, required=False, default=0)
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)


class DuplicateCheckSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    exclude_id = serializers.UUIDField(required=False)


class StockMovementInputSerializer(serializers.Serializer):
    """Input for recording a stock movement."""

    medication_id = serializers.UUIDField()
    movement_type = serializers.ChoiceField(choices=MovementType.choices)
    quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    reference_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    reason_code = serializers.ChoiceField(
        choices=AdjustmentReason.choices, required=False, allow_blank=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['movement_type'] == MovementType.ADJUSTMENT and not attrs.get('reason_code'):
            raise serializers.ValidationError({'reason_code': 'Adjustments require a reason code'})
        return attrs


class StockMovementFilterSerializer(serializers.Serializer):
    medication = serializers.UUIDField(required=False)
    movement_type = serializers.ChoiceField(choices=MovementType.choices, required=False)
    batch_number = serializers.CharField(max_length=100, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class StockAdjustmentSerializer(serializers.Serializer):
    """Set stock-on-hand to a counted level."""

    new_level = serializers.IntegerField(min_value=0)
    reason_code = serializers.ChoiceField(choices=AdjustmentReason.choices)
    notes = serializers.CharField(required=False, allow_blank=True)


class BatchFilterSerializer(serializers.Serializer):
    search = serializers.CharField(max_length=100, required=False)
    medication = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(
        choices=[EXPIRED, EXPIRING_SOON, WARNING, GOOD], required=False
    )
    sort_by = serializers.ChoiceField(
        choices=BATCH_SORT_KEYS, required=False, default='expiry_date'
    )


class AlertFilterSerializer(serializers.Serializer):
    alert_type = serializers.ChoiceField(
        choices=['expired', 'expiring_soon', 'low_stock', 'out_of_stock'], required=False
    )
    priority = serializers.ChoiceField(
        choices=['critical', 'high', 'medium', 'low'], required=False
    )


class HistoricalCostSerializer(serializers.Serializer):
    movement_id = serializers.UUIDField()
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0)


class SuggestionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SuggestionStatus.choices)


class ExportFormatSerializer(serializers.Serializer):
    file_type = serializers.ChoiceField(choices=['csv', 'xlsx'], required=False, default='csv')


class MedicationImportSerializer(serializers.Serializer):
    file = serializers.FileField()


# =============================================================================
# Output Serializers
# =============================================================================

class MedicationPricingSerializer(serializers.ModelSerializer):
    tier_name = serializers.CharField(source='tier.tier_name', read_only=True)

    class Meta:
        model = MedicationPricing
        fields = ['id', 'tier', 'tier_name', 'price']
        read_only_fields = fields


class MedicationSerializer(TierPriceMixin, serializers.ModelSerializer):
    """Full medication with tier prices and stock flags."""

    tier_prices = MedicationPricingSerializer(many=True, read_only=True)
    tier_price = serializers.SerializerMethodField()
    low_stock_threshold = serializers.IntegerField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    is_out_of_stock = serializers.BooleanField(read_only=True)
    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Medication
        fields = [
            'id',
            'name',
            'generic_name',
            'brand_name',
            'category',
            'unit_of_measure',
            'strength_options',
            'dosage_forms',
            'remarks',
            'cost_price',
            'average_cost',
            'stock_level',
            'reorder_level',
            'low_stock_threshold',
            'is_low_stock',
            'is_out_of_stock',
            'stock_value',
            'is_active',
            'tier_prices',
            'tier_price',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class MedicationListSerializer(TierPriceMixin, serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)
    tier_price = serializers.SerializerMethodField()

    class Meta:
        model = Medication
        fields = [
            'id',
            'name',
            'generic_name',
            'category',
            'unit_of_measure',
            'cost_price',
            'tier_price',
            'stock_level',
            'reorder_level',
            'is_low_stock',
            'is_active',
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    medication_name = serializers.CharField(source='medication.name', read_only=True)
    created_by = UserMinimalSerializer(read_only=True)
    purchase_order_number = serializers.CharField(
        source='purchase_order.po_number',
        read_only=True,
        default=None
    )
    delta = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            'id',
            'medication',
            'medication_name',
            'movement_type',
            'quantity',
            'delta',
            'previous_stock',
            'new_stock',
            'unit_cost',
            'total_cost',
            'cost_per_unit_after',
            'reference_number',
            'reason',
            'reason_code',
            'notes',
            'batch_number',
            'expiry_date',
            'purchase_order',
            'purchase_order_number',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields


class BatchSerializer(serializers.Serializer):
    """Batch aggregated from stock movements."""

    medication_id = serializers.UUIDField()
    medication_name = serializers.CharField()
    batch_number = serializers.CharField()
    expiry_date = serializers.DateField()
    quantity_received = serializers.IntegerField()
    quantity_dispensed = serializers.IntegerField()
    quantity_adjusted = serializers.IntegerField()
    current_quantity = serializers.IntegerField()
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4)
    first_received = serializers.DateTimeField()
    last_movement = serializers.DateTimeField()
    days_to_expiry = serializers.IntegerField()
    status = serializers.CharField()
    total_value = serializers.DecimalField(max_digits=14, decimal_places=2)


class FifoRecommendationSerializer(serializers.Serializer):
    medication_id = serializers.UUIDField()
    medication_name = serializers.CharField()
    oldest_batch = BatchSerializer()
    batches = BatchSerializer(many=True)
    total_quantity = serializers.IntegerField()


class AlertSerializer(serializers.Serializer):
    id = serializers.CharField()
    medication_id = serializers.UUIDField()
    medication_name = serializers.CharField()
    alert_type = serializers.CharField()
    priority = serializers.CharField()
    batch_number = serializers.CharField(allow_null=True)
    expiry_date = serializers.DateField(allow_null=True)
    days_to_expiry = serializers.IntegerField(allow_null=True)
    quantity = serializers.IntegerField()
    message = serializers.CharField()


class ReorderSuggestionSerializer(serializers.ModelSerializer):
    medication_name = serializers.CharField(source='medication.name', read_only=True)
    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True, default=None)

    class Meta:
        model = ReorderSuggestion
        fields = [
            'id',
            'medication',
            'medication_name',
            'current_stock',
            'suggested_quantity',
            'average_consumption_daily',
            'cost_estimate',
            'priority_level',
            'reason',
            'supplier',
            'supplier_name',
            'status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
