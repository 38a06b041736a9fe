from django.contrib import admin
from django.utils.html import format_html

from .models import Medication, MedicationPricing, StockMovement, ReorderSuggestion, SuggestionPriority


class MedicationPricingInline(admin.TabularInline):
    model = MedicationPricing
    extra = 0


class StockMovementInline(admin.TabularInline):
    """Read-only movement history; movements are created by the stock service."""
    model = StockMovement
    extra = 0
    fields = ['movement_type', 'quantity', 'new_stock', 'unit_cost', 'batch_number', 'expiry_date', 'created_at']
    readonly_fields = fields
    ordering = ['-created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Medication)
class MedicationAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'category',
        'stock_level',
        'stock_badge',
        'cost_price',
        'average_cost',
        'is_active',
    ]
    list_filter = ['category', 'is_active']
    search_fields = ['name', 'generic_name', 'brand_name']
    readonly_fields = ['stock_level', 'average_cost', 'created_at', 'updated_at']
    inlines = [MedicationPricingInline, StockMovementInline]

    def stock_badge(self, obj):
        """Stock state as colored badge."""
        if obj.is_out_of_stock:
            bg, label = '#B85C5C', 'Out of stock'
        elif obj.is_low_stock:
            bg, label = '#E5A94A', 'Low'
        else:
            bg, label = '#6B8E5E', 'OK'
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, label
        )
    stock_badge.short_description = 'Stock'


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = [
        'medication',
        'movement_type',
        'quantity',
        'previous_stock',
        'new_stock',
        'batch_number',
        'expiry_date',
        'created_by',
        'created_at',
    ]
    list_filter = ['movement_type', 'reason_code', 'created_at']
    search_fields = ['medication__name', 'batch_number', 'reference_number']
    date_hierarchy = 'created_at'

    def has_change_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False


@admin.register(ReorderSuggestion)
class ReorderSuggestionAdmin(admin.ModelAdmin):
    list_display = ['medication', 'suggested_quantity', 'priority_badge', 'status', 'supplier', 'created_at']
    list_filter = ['status', 'priority_level', 'reason']
    search_fields = ['medication__name']

    def priority_badge(self, obj):
        colors = {
            SuggestionPriority.URGENT: '#B85C5C',
            SuggestionPriority.HIGH: '#E5A94A',
            SuggestionPriority.NORMAL: '#6B8E5E',
            SuggestionPriority.LOW: '#A0A0A0',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(obj.priority_level, '#ccc'), obj.get_priority_level_display()
        )
    priority_badge.short_description = 'Priority'
