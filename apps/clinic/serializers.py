from rest_framework import serializers

from .models import (
    ClinicSetting,
    Panel,
    PriceTier,
    TierType,
    MedicalService,
    ServicePricing,
    DocumentTemplate,
)
from .services import (
    SETTING_DEFINITIONS,
    SMART_FIELDS,
    list_template_fields,
    get_setting_value,
    resolve_price,
    apply_price_rounding,
)
from .services.clinic_settings import PAYMENT_METHOD_CHOICES


# =============================================================================
# Input Serializers
# =============================================================================

class SettingsCategoryUpdateSerializer(serializers.Serializer):
    """Key/value payload for one settings category."""

    values = serializers.DictField()

    def validate_values(self, value):
        category = self.context.get('category')
        known = SETTING_DEFINITIONS.get(category, {})
        unknown = [key for key in value if key not in known]
        if unknown:
            raise serializers.ValidationError(
                f"Unknown setting(s): {', '.join(sorted(unknown))}"
            )
        if 'logo_path' in value:
            raise serializers.ValidationError("Use the logo endpoint to change the logo")
        return value


class LogoUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class PriceTierInputSerializer(serializers.Serializer):
    """Input for creating or updating a price tier."""

    tier_name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True)
    tier_type = serializers.ChoiceField(choices=TierType.choices, required=False)
    payment_methods = serializers.ListField(
        child=serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES + ['panel']),
        required=False
    )
    panel_ids = serializers.ListField(child=serializers.UUIDField(), required=False)
    requires_verification = serializers.BooleanField(required=False)
    coverage_rules = serializers.JSONField(required=False)
    eligibility_rules = serializers.JSONField(required=False)
    is_active = serializers.BooleanField(required=False)


class ServicePricingInputSerializer(serializers.Serializer):
    """Mapping of tier id to price."""

    prices = serializers.DictField(
        child=serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    )


class ServiceFilterSerializer(serializers.Serializer):
    category = serializers.CharField(max_length=100, required=False)
    status = serializers.ChoiceField(choices=['active', 'inactive'], required=False)
    search = serializers.CharField(max_length=100, required=False)


class PriceTierQuerySerializer(serializers.Serializer):
    """Optional ``?tier=`` choosing the tier shown as ``tier_price``."""

    tier = serializers.UUIDField(required=False)

    def validate_tier(self, value):
        tier = PriceTier.objects.filter(id=value).first()
        if tier is None:
            raise serializers.ValidationError("Price tier not found")
        return tier


def price_display_context(query_params) -> dict:
    """Serializer context for ``tier_price``: the requested tier and the rounding mode."""
    query = PriceTierQuerySerializer(data=query_params)
    query.is_valid(raise_exception=True)
    return {
        'tier': query.validated_data.get('tier'),
        'price_rounding': get_setting_value('payment', 'price_rounding'),
    }


class DocumentRenderSerializer(serializers.Serializer):
    """Smart field values used to render a document template."""

    context = serializers.DictField(child=serializers.CharField(allow_blank=True))


# =============================================================================
# Output Serializers
# =============================================================================

class ClinicSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClinicSetting
        fields = [
            'id',
            'setting_category',
            'setting_key',
            'setting_value',
            'data_type',
            'description',
            'is_required',
            'updated_by',
            'updated_at',
        ]
        read_only_fields = fields


class PanelSerializer(serializers.ModelSerializer):
    class Meta:
        model = Panel
        fields = [
            'id',
            'name',
            'code',
            'contact_person',
            'contact_email',
            'contact_phone',
            'is_active',
            'created_at',
        ]
        read_only_fields = ['id', 'created_at']


class PriceTierSerializer(serializers.ModelSerializer):
    panels = PanelSerializer(many=True, read_only=True)

    class Meta:
        model = PriceTier
        fields = [
            'id',
            'tier_name',
            'description',
            'tier_type',
            'payment_methods',
            'panels',
            'requires_verification',
            'coverage_rules',
            'eligibility_rules',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class TierPriceMixin:
    """``get_tier_price`` for serializers declaring a ``tier_price`` method field."""

    def get_tier_price(self, obj):
        price = resolve_price(obj, self.context.get('tier'))
        return str(apply_price_rounding(price, self.context.get('price_rounding')))


class ServicePricingSerializer(serializers.ModelSerializer):
    tier_name = serializers.CharField(source='tier.tier_name', read_only=True)

    class Meta:
        model = ServicePricing
        fields = ['id', 'tier', 'tier_name', 'price']
        read_only_fields = fields


class MedicalServiceSerializer(TierPriceMixin, serializers.ModelSerializer):
    tier_prices = ServicePricingSerializer(many=True, read_only=True)
    tier_price = serializers.SerializerMethodField()

    class Meta:
        model = MedicalService
        fields = [
            'id',
            'name',
            'category',
            'description',
            'price',
            'cost_price',
            'duration_minutes',
            'status',
            'tier_prices',
            'tier_price',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'tier_prices', 'tier_price', 'created_at', 'updated_at']


class DocumentTemplateSerializer(serializers.ModelSerializer):
    fields_used = serializers.SerializerMethodField()

    class Meta:
        model = DocumentTemplate
        fields = [
            'id',
            'template_name',
            'template_type',
            'description',
            'content',
            'price_from',
            'price_to',
            'status',
            'fields_used',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'fields_used', 'created_by', 'created_at', 'updated_at']

    def get_fields_used(self, obj):
        return [f for f in list_template_fields(obj.content) if f in SMART_FIELDS]
