"""
Serializers for analytics app.

This module contains:
1. Input serializers - Query parameter validation
2. Response serializers - API documentation and output formatting

Input Serializers:
    ReportQuerySerializer - Reporting window and export format
    PeriodQuerySerializer - Validates period and date range parameters

Response Serializers:
    ReportResponseSerializer - Inventory report payload
    ProcurementSummarySerializer - Procurement statistics
    InventorySummarySerializer - Inventory headline numbers
"""

from datetime import datetime, timedelta

from rest_framework import serializers

from .exports import EXPORT_FORMATS


# =============================================================================
# Input Serializers (Query Parameter Validation)
# =============================================================================

class ReportQuerySerializer(serializers.Serializer):
    """
    Validate report query parameters.

    Query Parameters:
        days (int): Reporting window in days (default 30)
        export (str): 'csv' or 'xlsx' to download instead of JSON
    """

    days = serializers.IntegerField(min_value=1, max_value=3650, required=False, default=30)
    export = serializers.ChoiceField(choices=EXPORT_FORMATS, required=False)


class PeriodQuerySerializer(serializers.Serializer):
    """
    Validate period and date range query parameters.

    Query Parameters:
        period (str): Month period in YYYY-MM format (e.g., '2026-01')
        start_date (date): Start of date range
        end_date (date): End of date range

    Note:
        If 'period' is provided, it takes precedence and is converted
        to start_date and end_date for the full month.
    """

    period = serializers.RegexField(
        regex=r'^\d{4}-(0[1-9]|1[0-2])$',
        required=False,
        allow_blank=True,
        help_text='Month period in YYYY-MM format'
    )
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        """Parse period into date range if provided."""
        period = attrs.get('period')
        if period:
            year, month = (int(part) for part in period.split('-'))
            attrs['start_date'] = datetime(year, month, 1).date()
            if month == 12:
                attrs['end_date'] = datetime(year + 1, 1, 1).date() - timedelta(days=1)
            else:
                attrs['end_date'] = datetime(year, month + 1, 1).date() - timedelta(days=1)

        start = attrs.get('start_date')
        end = attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError({
                'start_date': 'start_date must be before or equal to end_date'
            })
        return attrs


# =============================================================================
# Response Serializers (API Documentation)
# =============================================================================

class ReportResponseSerializer(serializers.Serializer):
    name = serializers.CharField()
    title = serializers.CharField()
    generated_at = serializers.DateTimeField()
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    columns = serializers.ListField(child=serializers.CharField())
    headers = serializers.ListField(child=serializers.CharField())
    rows = serializers.ListField(child=serializers.DictField())
    summary = serializers.DictField()


class TopSupplierSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    supplier_name = serializers.CharField()
    total_spend = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_count = serializers.IntegerField()


class MonthlySpendSerializer(serializers.Serializer):
    period = serializers.CharField(help_text='YYYY-MM')
    total_spend = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_count = serializers.IntegerField()


class ProcurementSummarySerializer(serializers.Serializer):
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    total_spend = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_count = serializers.IntegerField()
    average_order_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    top_suppliers = TopSupplierSerializer(many=True)
    monthly_trend = MonthlySpendSerializer(many=True)
    status_distribution = serializers.DictField(child=serializers.IntegerField())
    average_lead_time_days = serializers.DecimalField(max_digits=8, decimal_places=2, allow_null=True)
    pending_approval_count = serializers.IntegerField()


class InventorySummarySerializer(serializers.Serializer):
    stock = serializers.DictField()
    batches = serializers.DictField()
    alerts = serializers.DictField()
    valuation = serializers.DictField()


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
