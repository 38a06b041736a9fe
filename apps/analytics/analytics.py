"""
Analytics Module
=================

Read-only report queries over inventory and procurement data.

Classes:
    InventoryReports: The six inventory report templates.
    ProcurementAnalytics: Spend, supplier and lead-time statistics.

Example:
    Building a report and exporting it::

        from apps.analytics.analytics import InventoryReports
        from apps.analytics.exports import render_export

        report = InventoryReports.build('turnover', days=30)
        response = render_export(
            name=report['name'],
            fmt='xlsx',
            columns=report['columns'],
            rows=report['rows'],
            headers=report['headers'],
        )

Note:
    Every report returns plain dictionaries so the same payload serves the
    JSON endpoint and the CSV/XLSX export.
"""

import math
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Sum, Count, Max, Avg
from django.db.models.functions import TruncMonth, Coalesce
from django.utils import timezone

from apps.inventory.models import Medication, StockMovement, MovementType
from apps.inventory.services import get_batches, get_batch_statistics
from apps.procurement.models import PurchaseOrder, POStatus
from .exceptions import UnknownReportError, InvalidDateRangeError

CENT = Decimal('0.01')

DEFAULT_PERIOD_DAYS = 30
TREND_BAND = Decimal('0.10')
STABLE_VARIANCE_PERCENT = Decimal('10')

AGING_BUCKETS = (
    (30, '0-30'),
    (90, '31-90'),
    (180, '91-180'),
)
AGING_OLDEST = '180+'
NO_MOVEMENT = 'No movement'

REPORT_TEMPLATES = {
    'stock_aging': {
        'title': 'Stock Aging Report',
        'columns': [
            ('medication_name', 'Medication'),
            ('current_stock', 'Current Stock'),
            ('last_movement_date', 'Last Movement'),
            ('days_since_movement', 'Days Since Movement'),
            ('aging_bucket', 'Aging Bucket'),
            ('turnover_rate', 'Turnover Rate'),
        ],
    },
    'consumption': {
        'title': 'Consumption Analysis',
        'columns': [
            ('medication_name', 'Medication'),
            ('total_dispensed', 'Total Dispensed'),
            ('avg_daily_consumption', 'Avg Daily Consumption'),
            ('peak_consumption_day', 'Peak Day'),
            ('peak_consumption_quantity', 'Peak Day Quantity'),
            ('trend', 'Trend'),
        ],
    },
    'cost_analysis': {
        'title': 'Cost Variance Analysis',
        'columns': [
            ('medication_name', 'Medication'),
            ('current_cost', 'Current Cost'),
            ('average_cost', 'Average Cost'),
            ('cost_variance', 'Variance %'),
            ('price_stability', 'Price Stability'),
        ],
    },
    'expiry': {
        'title': 'Expiry Report',
        'columns': [
            ('medication_name', 'Medication'),
            ('batch_number', 'Batch'),
            ('expiry_date', 'Expiry Date'),
            ('days_to_expiry', 'Days To Expiry'),
            ('current_quantity', 'Quantity'),
            ('status', 'Status'),
            ('total_value', 'Value'),
        ],
    },
    'valuation': {
        'title': 'Inventory Valuation',
        'columns': [
            ('medication_name', 'Medication'),
            ('current_stock', 'Current Stock'),
            ('unit_cost', 'Unit Cost'),
            ('total_value', 'Total Value'),
            ('percentage_of_total', '% of Total'),
        ],
    },
    'turnover': {
        'title': 'Turnover Analysis',
        'columns': [
            ('medication_name', 'Medication'),
            ('avg_stock', 'Stock'),
            ('total_dispensed', 'Dispensed'),
            ('consumption_rate', 'Daily Consumption'),
            ('turnover_ratio', 'Turnover Ratio'),
            ('reorder_frequency', 'Reorder Every (days)'),
        ],
    },
}


def _quantize(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def aging_bucket(days_since_movement):
    """Map days since the last movement to its aging bucket label."""
    if days_since_movement is None:
        return NO_MOVEMENT
    for upper, label in AGING_BUCKETS:
        if days_since_movement <= upper:
            return label
    return AGING_OLDEST


def consumption_trend(first_half: int, second_half: int) -> str:
    """
    Compare the two halves of a period.

    ``increasing`` when the second half is more than 10% above the first,
    ``decreasing`` when more than 10% below, otherwise ``stable``.
    """
    if first_half == 0:
        return 'increasing' if second_half > 0 else 'stable'
    change = (Decimal(second_half) - Decimal(first_half)) / Decimal(first_half)
    if change > TREND_BAND:
        return 'increasing'
    if change < -TREND_BAND:
        return 'decreasing'
    return 'stable'


def reorder_frequency_days(turnover_ratio: Decimal):
    """ceil(365 / (ratio x 30)), or None when nothing was dispensed."""
    if turnover_ratio <= 0:
        return None
    return math.ceil(Decimal(365) / (turnover_ratio * 30))


class InventoryReports:
    """
    Inventory report templates.

    Each template method takes the reporting window in days and a reference
    date and returns ``(rows, summary)``; ``build`` wraps them with the
    column layout and metadata.

    Templates:
        stock_aging: Last movement, aging bucket and turnover per medication.
        consumption: Dispensed totals, peak day and trend.
        cost_analysis: Current vs average receipt cost.
        expiry: Batches on hand with expiry status.
        valuation: Stock value and share of the total.
        turnover: Turnover ratio and reorder frequency.
    """

    @staticmethod
    def build(template, *, days=DEFAULT_PERIOD_DAYS, today=None):
        """
        Build a report by template name.

        Args:
            template (str): One of REPORT_TEMPLATES.
            days (int): Reporting window for consumption-based figures.
            today (date, optional): Reference date, defaults to today.

        Returns:
            dict: name, title, generated_at, period_start, period_end,
            columns, headers, rows and summary.

        Raises:
            UnknownReportError: If the template is not recognised.
        """
        if template not in REPORT_TEMPLATES:
            raise UnknownReportError(
                f"Unknown report: {template}. Valid reports: {', '.join(REPORT_TEMPLATES)}"
            )
        if days < 1:
            raise InvalidDateRangeError("days must be at least 1")

        today = today or timezone.localdate()
        layout = REPORT_TEMPLATES[template]
        rows, summary = getattr(InventoryReports, template)(days=days, today=today)

        return {
            'name': template,
            'title': layout['title'],
            'generated_at': timezone.now(),
            'period_start': today - timedelta(days=days),
            'period_end': today,
            'columns': [key for key, _ in layout['columns']],
            'headers': [label for _, label in layout['columns']],
            'rows': rows,
            'summary': summary,
        }

    @staticmethod
    def _active_medications():
        return Medication.objects.filter(is_active=True).order_by('name')

    @staticmethod
    def _dispensed_totals(start: date) -> dict:
        """Units dispensed per medication since ``start``."""
        totals = (
            StockMovement.objects
            .filter(movement_type=MovementType.DISPENSED, created_at__date__gte=start)
            .values('medication_id')
            .annotate(total=Sum('quantity'))
        )
        return {row['medication_id']: row['total'] or 0 for row in totals}

    @staticmethod
    def stock_aging(*, days, today):
        """Turnover rate is dispensed in the window / current stock (0 when out of stock)."""
        dispensed = InventoryReports._dispensed_totals(today - timedelta(days=days))
        medications = InventoryReports._active_medications().annotate(
            last_movement=Max('stock_movements__created_at')
        )

        rows = []
        bucket_counts = defaultdict(int)
        for medication in medications:
            last_movement = medication.last_movement
            last_date = timezone.localtime(last_movement).date() if last_movement else None
            days_since = (today - last_date).days if last_date else None
            total_dispensed = dispensed.get(medication.id, 0)
            turnover = (
                _quantize(Decimal(total_dispensed) / medication.stock_level)
                if medication.stock_level > 0 else Decimal('0.00')
            )
            bucket = aging_bucket(days_since)
            bucket_counts[bucket] += 1
            rows.append({
                'medication_id': medication.id,
                'medication_name': medication.name,
                'current_stock': medication.stock_level,
                'last_movement_date': last_date,
                'days_since_movement': days_since,
                'aging_bucket': bucket,
                'turnover_rate': turnover,
            })

        return rows, {'item_count': len(rows), 'buckets': dict(bucket_counts)}

    @staticmethod
    def consumption(*, days, today):
        start = today - timedelta(days=days)
        midpoint = start + timedelta(days=days / 2)

        per_day = defaultdict(lambda: defaultdict(int))
        halves = defaultdict(lambda: [0, 0])
        movements = StockMovement.objects.filter(
            movement_type=MovementType.DISPENSED,
            created_at__date__gte=start,
        ).only('medication_id', 'quantity', 'created_at')
        for movement in movements:
            day = timezone.localtime(movement.created_at).date()
            per_day[movement.medication_id][day] += movement.quantity
            halves[movement.medication_id][0 if day < midpoint else 1] += movement.quantity

        rows = []
        for medication in InventoryReports._active_medications():
            daily = per_day.get(medication.id, {})
            total = sum(daily.values())
            peak_day, peak_quantity = (
                max(daily.items(), key=lambda item: (item[1], item[0])) if daily else (None, 0)
            )
            first_half, second_half = halves.get(medication.id, (0, 0))
            rows.append({
                'medication_id': medication.id,
                'medication_name': medication.name,
                'total_dispensed': total,
                'avg_daily_consumption': _quantize(Decimal(total) / days),
                'peak_consumption_day': peak_day,
                'peak_consumption_quantity': peak_quantity,
                'trend': consumption_trend(first_half, second_half),
            })

        return rows, {
            'item_count': len(rows),
            'total_dispensed': sum(row['total_dispensed'] for row in rows),
            'increasing': sum(1 for row in rows if row['trend'] == 'increasing'),
            'decreasing': sum(1 for row in rows if row['trend'] == 'decreasing'),
        }

    @staticmethod
    def cost_analysis(*, days, today):
        """
        Average cost is the mean receipt unit cost; without receipts the
        current cost is used, giving zero variance.
        """
        receipt_costs = {
            row['medication_id']: row['avg_cost']
            for row in (
                StockMovement.objects
                .filter(movement_type=MovementType.RECEIPT, unit_cost__gt=0)
                .values('medication_id')
                .annotate(avg_cost=Avg('unit_cost'))
            )
        }

        rows = []
        for medication in InventoryReports._active_medications():
            current = medication.cost_price
            average = receipt_costs.get(medication.id)
            average = _quantize(average) if average is not None else current
            variance = (
                _quantize((current - average) / average * 100) if average else Decimal('0.00')
            )
            rows.append({
                'medication_id': medication.id,
                'medication_name': medication.name,
                'current_cost': current,
                'average_cost': average,
                'cost_variance': variance,
                'price_stability': 'Stable' if abs(variance) < STABLE_VARIANCE_PERCENT else 'Volatile',
            })

        return rows, {
            'item_count': len(rows),
            'volatile': sum(1 for row in rows if row['price_stability'] == 'Volatile'),
        }

    @staticmethod
    def expiry(*, days, today):
        batches = get_batches(today=today)
        rows = [
            {
                'medication_id': batch['medication_id'],
                'medication_name': batch['medication_name'],
                'batch_number': batch['batch_number'],
                'expiry_date': batch['expiry_date'],
                'days_to_expiry': batch['days_to_expiry'],
                'current_quantity': batch['current_quantity'],
                'status': batch['status'],
                'total_value': batch['total_value'],
            }
            for batch in batches
        ]
        return rows, get_batch_statistics(batches)

    @staticmethod
    def valuation(*, days, today):
        medications = list(InventoryReports._active_medications())
        values = {m.id: _quantize(m.stock_level * m.cost_price) for m in medications}
        total = sum(values.values(), Decimal('0.00'))

        rows = [
            {
                'medication_id': medication.id,
                'medication_name': medication.name,
                'current_stock': medication.stock_level,
                'unit_cost': medication.cost_price,
                'total_value': values[medication.id],
                'percentage_of_total': (
                    _quantize(values[medication.id] / total * 100) if total else Decimal('0.00')
                ),
            }
            for medication in medications
        ]
        return rows, {'item_count': len(rows), 'total_value': total}

    @staticmethod
    def turnover(*, days, today):
        dispensed = InventoryReports._dispensed_totals(today - timedelta(days=days))

        rows = []
        for medication in InventoryReports._active_medications():
            total = dispensed.get(medication.id, 0)
            stock = medication.stock_level
            ratio = _quantize(Decimal(total) / stock) if stock > 0 else Decimal('0.00')
            rows.append({
                'medication_id': medication.id,
                'medication_name': medication.name,
                'avg_stock': stock,
                'total_dispensed': total,
                'consumption_rate': _quantize(Decimal(total) / days),
                'turnover_ratio': ratio,
                'reorder_frequency': reorder_frequency_days(ratio),
            })

        moving = [row for row in rows if row['turnover_ratio'] > 0]
        return rows, {
            'item_count': len(rows),
            'moving_items': len(moving),
            'average_turnover_ratio': (
                _quantize(sum(row['turnover_ratio'] for row in moving) / len(moving))
                if moving else Decimal('0.00')
            ),
        }


class ProcurementAnalytics:
    """Purchase order statistics over a date range (default: last 12 months)."""

    TOP_SUPPLIER_LIMIT = 5

    @staticmethod
    def summary(start_date=None, end_date=None):
        """
        Spend and order statistics for purchase orders dated in the range.

        Cancelled orders are excluded from spend, order count, average
        order value, top suppliers and the monthly trend; they still appear
        in the status distribution.

        Args:
            start_date (date, optional): Defaults to 365 days before end_date.
            end_date (date, optional): Defaults to today.

        Returns:
            dict: total_spend, order_count, average_order_value,
            top_suppliers, monthly_trend, status_distribution,
            average_lead_time_days, pending_approval_count.

        Raises:
            InvalidDateRangeError: If start_date is after end_date.
        """
        end_date = end_date or timezone.localdate()
        start_date = start_date or end_date - timedelta(days=365)
        if start_date > end_date:
            raise InvalidDateRangeError("start_date must be on or before end_date")

        orders = PurchaseOrder.objects.filter(order_date__gte=start_date, order_date__lte=end_date)
        active = orders.exclude(status=POStatus.CANCELLED)

        totals = active.aggregate(
            spend=Coalesce(Sum('total_amount'), Decimal('0.00')),
            count=Count('id'),
        )
        average = _quantize(totals['spend'] / totals['count']) if totals['count'] else Decimal('0.00')

        top_suppliers = [
            {
                'supplier_id': row['supplier_id'],
                'supplier_name': row['supplier__supplier_name'],
                'total_spend': row['spend'],
                'order_count': row['orders'],
            }
            for row in (
                active.values('supplier_id', 'supplier__supplier_name')
                .annotate(spend=Sum('total_amount'), orders=Count('id'))
                .order_by('-spend')[:ProcurementAnalytics.TOP_SUPPLIER_LIMIT]
            )
        ]

        monthly_trend = [
            {
                'period': row['month'].strftime('%Y-%m'),
                'total_spend': row['spend'],
                'order_count': row['orders'],
            }
            for row in (
                active.annotate(month=TruncMonth('order_date'))
                .values('month')
                .annotate(spend=Sum('total_amount'), orders=Count('id'))
                .order_by('month')
            )
        ]

        status_distribution = {
            row['status']: row['count']
            for row in orders.values('status').annotate(count=Count('id')).order_by('status')
        }

        lead_times = [
            (delivered - ordered).days
            for ordered, delivered in active.filter(delivery_date__isnull=False)
            .values_list('order_date', 'delivery_date')
        ]
        average_lead_time = (
            _quantize(Decimal(sum(lead_times)) / len(lead_times)) if lead_times else None
        )

        return {
            'period_start': start_date,
            'period_end': end_date,
            'total_spend': totals['spend'],
            'order_count': totals['count'],
            'average_order_value': average,
            'top_suppliers': top_suppliers,
            'monthly_trend': monthly_trend,
            'status_distribution': status_distribution,
            'average_lead_time_days': average_lead_time,
            'pending_approval_count': orders.filter(status=POStatus.PENDING_APPROVAL).count(),
        }
