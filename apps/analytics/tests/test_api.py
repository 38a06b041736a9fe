import io
import pytest
from datetime import timedelta
from decimal import Decimal
from django.urls import reverse
from openpyxl import load_workbook
from rest_framework import status


# =============================================================================
# Report Endpoint Tests
# =============================================================================

@pytest.mark.django_db
class TestInventoryReport:
    """Tests for GET /api/analytics/reports/{template}/"""

    def test_json_report(self, nurse_client, dispensed_paracetamol):
        url = reverse('analytics:report', args=['valuation'])
        response = nurse_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == 'valuation'
        assert 'rows' in response.data
        assert 'summary' in response.data
        assert response.data['summary']['total_value'] == Decimal('6.00')

    def test_days_parameter(self, nurse_client, dispensed_paracetamol):
        url = reverse('analytics:report', args=['turnover'])
        response = nurse_client.get(url, {'days': 10})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['period_end'] - response.data['period_start'] == timedelta(days=10)
        row = next(r for r in response.data['rows'] if r['medication_name'] == 'Paracetamol 500mg')
        assert row['consumption_rate'] == Decimal('4.00')

    def test_invalid_days(self, nurse_client):
        url = reverse('analytics:report', args=['turnover'])
        response = nurse_client.get(url, {'days': 0})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'days' in response.data

    def test_unknown_template(self, nurse_client):
        url = reverse('analytics:report', args=['profit'])
        response = nurse_client.get(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'Unknown report' in response.data['error']

    def test_unknown_template_logged(self, nurse_client, caplog):
        nurse_client.get(reverse('analytics:report', args=['profit']))

        record = next(r for r in caplog.records if r.name == 'apps.analytics.views')
        assert record.levelname == 'WARNING'

    def test_csv_export(self, nurse_client, dispensed_paracetamol):
        url = reverse('analytics:report', args=['valuation'])
        response = nurse_client.get(url, {'export': 'csv'})

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'text/csv'
        assert response['Content-Disposition'].startswith('attachment; filename="valuation_')
        assert response['Content-Disposition'].endswith('.csv"')

        lines = response.content.decode('utf-8').splitlines()
        assert lines[0] == 'Medication,Current Stock,Unit Cost,Total Value,% of Total'
        assert lines[2] == 'Paracetamol 500mg,60,0.1,6.0,100.0'

    def test_xlsx_export(self, nurse_client, dispensed_paracetamol):
        url = reverse('analytics:report', args=['expiry'])
        response = nurse_client.get(url, {'export': 'xlsx'})

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == (
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
        )

        sheet = load_workbook(io.BytesIO(response.content)).active
        rows = list(sheet.iter_rows(values_only=True))
        assert rows[0][:2] == ('Medication', 'Batch')
        assert rows[1][1] == 'PCM-1'

    def test_unsupported_export(self, nurse_client):
        url = reverse('analytics:report', args=['valuation'])
        response = nurse_client.get(url, {'export': 'pdf'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_receptionist_forbidden(self, receptionist_client):
        url = reverse('analytics:report', args=['valuation'])
        response = receptionist_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_requires_authentication(self, api_client):
        url = reverse('analytics:report', args=['valuation'])
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Procurement Summary Tests
# =============================================================================

@pytest.mark.django_db
class TestProcurementSummary:
    """Tests for GET /api/analytics/procurement/"""

    def test_summary(self, admin_client, purchase_orders):
        response = admin_client.get(reverse('analytics:procurement'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order_count'] == 3
        assert response.data['total_spend'] == Decimal('35.00')
        assert response.data['top_suppliers'][0]['supplier_name'] == 'MedSupply Sdn Bhd'

    def test_period_filter(self, admin_client, purchase_orders):
        response = admin_client.get(reverse('analytics:procurement'), {'period': '2020-01'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['order_count'] == 0
        assert str(response.data['period_end']) == '2020-01-31'

    def test_invalid_period(self, admin_client):
        response = admin_client.get(reverse('analytics:procurement'), {'period': '2026-13'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reversed_dates(self, admin_client):
        response = admin_client.get(
            reverse('analytics:procurement'),
            {'start_date': '2026-02-01', 'end_date': '2026-01-01'}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data

    def test_receptionist_forbidden(self, receptionist_client):
        response = receptionist_client.get(reverse('analytics:procurement'))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Inventory Summary Tests
# =============================================================================

@pytest.mark.django_db
class TestInventorySummary:
    """Tests for GET /api/analytics/inventory-summary/"""

    def test_summary(self, nurse_client, dispensed_paracetamol):
        response = nurse_client.get(reverse('analytics:inventory-summary'))

        assert response.status_code == status.HTTP_200_OK
        assert set(response.data) == {'stock', 'batches', 'alerts', 'valuation'}
        assert response.data['stock']['total_items'] == 2
        assert response.data['stock']['out_of_stock_count'] == 1
        assert response.data['batches']['total_quantity'] == 60

    def test_empty_inventory(self, nurse_client):
        response = nurse_client.get(reverse('analytics:inventory-summary'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['stock']['total_items'] == 0
        assert response.data['batches']['total_batches'] == 0
