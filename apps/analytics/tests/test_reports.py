import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from apps.analytics.analytics import (
    InventoryReports,
    ProcurementAnalytics,
    REPORT_TEMPLATES,
    aging_bucket,
    consumption_trend,
    reorder_frequency_days,
)
from apps.analytics.exceptions import UnknownReportError, InvalidDateRangeError
from apps.inventory.models import MovementType, StockMovement
from apps.inventory.services import record_stock_movement
from apps.procurement.services import cancel_purchase_order


def _row(report, name):
    return next(row for row in report['rows'] if row['medication_name'] == name)


# =============================================================================
# Helpers
# =============================================================================

@pytest.mark.parametrize('days, expected', [
    (None, 'No movement'),
    (0, '0-30'),
    (30, '0-30'),
    (31, '31-90'),
    (180, '91-180'),
    (181, '180+'),
])
def test_aging_bucket(days, expected):
    assert aging_bucket(days) == expected


@pytest.mark.parametrize('first, second, expected', [
    (0, 0, 'stable'),
    (0, 5, 'increasing'),
    (100, 111, 'increasing'),
    (100, 110, 'stable'),
    (100, 89, 'decreasing'),
])
def test_consumption_trend(first, second, expected):
    assert consumption_trend(first, second) == expected


def test_reorder_frequency():
    assert reorder_frequency_days(Decimal('0.00')) is None
    assert reorder_frequency_days(Decimal('1.00')) == 13


# =============================================================================
# Inventory reports
# =============================================================================

@pytest.mark.django_db
class TestInventoryReports:

    def test_layout(self, dispensed_paracetamol, today):
        report = InventoryReports.build('valuation', days=7, today=today)

        assert report['name'] == 'valuation'
        assert report['title'] == 'Inventory Valuation'
        assert report['period_start'] == today - timedelta(days=7)
        assert report['columns'] == [key for key, _ in REPORT_TEMPLATES['valuation']['columns']]
        assert report['headers'][0] == 'Medication'

    def test_unknown_template(self, db):
        with pytest.raises(UnknownReportError, match='Valid reports'):
            InventoryReports.build('profit')

    def test_days_must_be_positive(self, db):
        with pytest.raises(InvalidDateRangeError):
            InventoryReports.build('turnover', days=0)

    def test_valuation(self, dispensed_paracetamol, today):
        report = InventoryReports.build('valuation', today=today)

        row = _row(report, 'Paracetamol 500mg')
        assert row['current_stock'] == 60
        assert row['total_value'] == Decimal('6.00')
        assert row['percentage_of_total'] == Decimal('100.00')
        assert _row(report, 'Amoxicillin 250mg')['percentage_of_total'] == Decimal('0.00')
        assert report['summary']['total_value'] == Decimal('6.00')

    def test_rows_sorted_by_name(self, dispensed_paracetamol, today):
        report = InventoryReports.build('valuation', today=today)

        assert [row['medication_name'] for row in report['rows']] == [
            'Amoxicillin 250mg',
            'Paracetamol 500mg',
        ]

    def test_stock_aging(self, dispensed_paracetamol, today):
        report = InventoryReports.build('stock_aging', today=today)

        row = _row(report, 'Paracetamol 500mg')
        assert row['days_since_movement'] == 0
        assert row['aging_bucket'] == '0-30'
        assert row['turnover_rate'] == Decimal('0.67')
        assert _row(report, 'Amoxicillin 250mg')['aging_bucket'] == 'No movement'
        assert report['summary']['buckets'] == {'0-30': 1, 'No movement': 1}

    def test_consumption(self, dispensed_paracetamol, today):
        earlier = record_stock_movement(
            medication_id=dispensed_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=10,
        )
        StockMovement.objects.filter(id=earlier.id).update(
            created_at=timezone.now() - timedelta(days=20)
        )

        report = InventoryReports.build('consumption', days=30, today=today)

        row = _row(report, 'Paracetamol 500mg')
        assert row['total_dispensed'] == 50
        assert row['avg_daily_consumption'] == Decimal('1.67')
        assert row['peak_consumption_day'] == today
        assert row['peak_consumption_quantity'] == 40
        assert row['trend'] == 'increasing'
        assert report['summary']['total_dispensed'] == 50

    def test_cost_analysis(self, dispensed_paracetamol, today):
        dispensed_paracetamol.cost_price = Decimal('0.12')
        dispensed_paracetamol.save()

        report = InventoryReports.build('cost_analysis', today=today)

        row = _row(report, 'Paracetamol 500mg')
        assert row['average_cost'] == Decimal('0.10')
        assert row['cost_variance'] == Decimal('20.00')
        assert row['price_stability'] == 'Volatile'
        # no receipts: compared with itself
        assert _row(report, 'Amoxicillin 250mg')['price_stability'] == 'Stable'

    def test_expiry(self, dispensed_paracetamol, today):
        report = InventoryReports.build('expiry', today=today)

        assert len(report['rows']) == 1
        row = report['rows'][0]
        assert row['batch_number'] == 'PCM-1'
        assert row['current_quantity'] == 60
        assert row['days_to_expiry'] == 120
        assert row['status'] == 'good'
        assert report['summary']['total_batches'] == 1

    def test_turnover(self, dispensed_paracetamol, today):
        report = InventoryReports.build('turnover', days=30, today=today)

        row = _row(report, 'Paracetamol 500mg')
        assert row['turnover_ratio'] == Decimal('0.67')
        assert row['consumption_rate'] == Decimal('1.33')
        assert row['reorder_frequency'] == 19
        assert _row(report, 'Amoxicillin 250mg')['reorder_frequency'] is None
        assert report['summary']['moving_items'] == 1


# =============================================================================
# Procurement analytics
# =============================================================================

@pytest.mark.django_db
class TestProcurementAnalytics:

    def test_summary(self, purchase_orders):
        cancel_purchase_order(purchase_order_id=purchase_orders[2].id, reason='Duplicate')

        data = ProcurementAnalytics.summary()

        assert data['total_spend'] == Decimal('30.00')
        assert data['order_count'] == 2
        assert data['average_order_value'] == Decimal('15.00')
        assert data['status_distribution'] == {'cancelled': 1, 'draft': 2}
        assert [s['supplier_name'] for s in data['top_suppliers']] == ['MedSupply Sdn Bhd']
        assert data['monthly_trend'][0]['period'] == timezone.localdate().strftime('%Y-%m')
        assert data['average_lead_time_days'] is None

    def test_top_suppliers_by_spend(self, purchase_orders):
        data = ProcurementAnalytics.summary()

        assert [(s['supplier_name'], s['order_count']) for s in data['top_suppliers']] == [
            ('MedSupply Sdn Bhd', 2),
            ('PharmaDirect', 1),
        ]

    def test_lead_time(self, purchase_orders, today):
        order = purchase_orders[0]
        order.order_date = today - timedelta(days=6)
        order.delivery_date = today
        order.save()

        data = ProcurementAnalytics.summary()

        assert data['average_lead_time_days'] == Decimal('6.00')

    def test_outside_range(self, purchase_orders, today):
        data = ProcurementAnalytics.summary(
            start_date=today - timedelta(days=60),
            end_date=today - timedelta(days=30),
        )

        assert data['order_count'] == 0
        assert data['total_spend'] == Decimal('0.00')
        assert data['top_suppliers'] == []

    def test_pending_approval_count(self, purchase_orders):
        from apps.procurement.services import submit_for_approval

        submit_for_approval(purchase_order_id=purchase_orders[0].id)

        assert ProcurementAnalytics.summary()['pending_approval_count'] == 1

    def test_invalid_range(self, db, today):
        with pytest.raises(InvalidDateRangeError):
            ProcurementAnalytics.summary(start_date=today, end_date=today - timedelta(days=1))
