from django.contrib import admin

from .models import (
    ClinicSetting,
    Panel,
    PriceTier,
    MedicalService,
    ServicePricing,
    DocumentTemplate,
)


@admin.register(ClinicSetting)
class ClinicSettingAdmin(admin.ModelAdmin):
    list_display = ['setting_category', 'setting_key', 'setting_value', 'data_type', 'updated_at']
    list_filter = ['setting_category', 'data_type']
    search_fields = ['setting_key', 'description']
    readonly_fields = ['created_at', 'updated_at', 'updated_by']


@admin.register(Panel)
class PanelAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'contact_person', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'code']


@admin.register(PriceTier)
class PriceTierAdmin(admin.ModelAdmin):
    list_display = ['tier_name', 'tier_type', 'requires_verification', 'is_active']
    list_filter = ['tier_type', 'is_active', 'requires_verification']
    search_fields = ['tier_name']
    filter_horizontal = ['panels']


class ServicePricingInline(admin.TabularInline):
    model = ServicePricing
    extra = 0


@admin.register(MedicalService)
class MedicalServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'cost_price', 'duration_minutes', 'status']
    list_filter = ['category', 'status']
    search_fields = ['name', 'description']
    inlines = [ServicePricingInline]


@admin.register(DocumentTemplate)
class DocumentTemplateAdmin(admin.ModelAdmin):
    list_display = ['template_name', 'template_type', 'price_from', 'price_to', 'status']
    list_filter = ['template_type', 'status']
    search_fields = ['template_name', 'description']
    readonly_fields = ['created_by', 'created_at', 'updated_at']
