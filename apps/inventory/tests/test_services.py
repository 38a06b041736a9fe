import pytest
from datetime import timedelta
from decimal import Decimal
from io import BytesIO, StringIO
from unittest.mock import patch
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from openpyxl import Workbook
from apps.inventory.models import (
    Medication,
    StockMovement,
    MovementType,
    AdjustmentReason,
    ReorderSuggestion,
    SuggestionPriority,
    SuggestionReason,
    SuggestionStatus,
)
from apps.inventory.services import (
    record_stock_movement,
    adjust_stock_level,
    reconcile_stock_levels,
    calculate_stock_from_movements,
    classify_expiry,
    get_batches,
    get_batch_statistics,
    get_fifo_recommendations,
    expiry_priority,
    get_expiry_alerts,
    get_alert_summary,
    calculate_inventory_value,
    recalculate_average_cost,
    update_historical_cost,
    compare_purchase_prices,
    build_suggestion,
    generate_reorder_suggestions,
    update_suggestion_status,
    find_similar_medications,
    create_medication,
    import_medications,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidAdjustmentError,
    StockAdjustmentPermissionError,
    NoPriceTiersError,
    NotAReceiptError,
    InvalidStatusTransitionError,
    ImportFileError,
)


# =============================================================================
# Stock movements
# =============================================================================

@pytest.mark.django_db
class TestRecordStockMovement:

    def test_receipt_increases_stock(self, paracetamol):
        movement = record_stock_movement(
            medication_id=paracetamol.id,
            movement_type=MovementType.RECEIPT,
            quantity=40,
            unit_cost=Decimal('0.10'),
        )

        paracetamol.refresh_from_db()
        assert paracetamol.stock_level == 40
        assert movement.previous_stock == 0
        assert movement.new_stock == 40
        assert movement.total_cost == Decimal('4.00')

    def test_first_receipt_sets_average_cost(self, paracetamol):
        record_stock_movement(
            medication_id=paracetamol.id,
            movement_type=MovementType.RECEIPT,
            quantity=10,
            unit_cost=Decimal('0.25'),
        )

        paracetamol.refresh_from_db()
        assert paracetamol.average_cost == Decimal('0.2500')

    def test_receipts_blend_average_cost(self, stocked_paracetamol):
        # (100 * 0.10 + 60 * 0.12) / 160
        assert stocked_paracetamol.average_cost == Decimal('0.1075')
        assert stocked_paracetamol.stock_level == 160

    def test_receipt_into_empty_stock_resets_average(self, stocked_paracetamol):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=160,
        )
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.RECEIPT,
            quantity=10,
            unit_cost=Decimal('0.30'),
        )

        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.average_cost == Decimal('0.3000')

    def test_dispense_more_than_on_hand(self, stocked_paracetamol):
        with pytest.raises(InsufficientStockError):
            record_stock_movement(
                medication_id=stocked_paracetamol.id,
                movement_type=MovementType.DISPENSED,
                quantity=161,
            )

        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.stock_level == 160
        assert stocked_paracetamol.stock_movements.count() == 2

    @pytest.mark.parametrize('movement_type,quantity', [
        (MovementType.RECEIPT, 0),
        (MovementType.DISPENSED, -5),
        (MovementType.ADJUSTMENT, 0),
    ])
    def test_invalid_quantity(self, paracetamol, movement_type, quantity):
        with pytest.raises(InvalidQuantityError):
            record_stock_movement(
                medication_id=paracetamol.id,
                movement_type=movement_type,
                quantity=quantity,
            )

    def test_negative_adjustment(self, stocked_paracetamol):
        movement = record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.ADJUSTMENT,
            quantity=-10,
            reason_code=AdjustmentReason.DAMAGED,
        )

        assert movement.delta == -10
        assert movement.new_stock == 150


@pytest.mark.django_db
class TestAdjustStockLevel:

    def test_doctor_sets_counted_level(self, stocked_paracetamol, doctor):
        movement = adjust_stock_level(
            medication_id=stocked_paracetamol.id,
            new_level=150,
            reason_code=AdjustmentReason.CYCLE_COUNT,
            user=doctor,
        )

        assert movement.movement_type == MovementType.ADJUSTMENT
        assert movement.quantity == -10
        assert movement.reason == 'Cycle count'
        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.stock_level == 150

    def test_nurse_cannot_adjust(self, stocked_paracetamol, nurse):
        with pytest.raises(StockAdjustmentPermissionError):
            adjust_stock_level(
                medication_id=stocked_paracetamol.id,
                new_level=150,
                reason_code=AdjustmentReason.CYCLE_COUNT,
                user=nurse,
            )

    def test_counted_level_read_under_row_lock(self, stocked_paracetamol, doctor):
        with patch.object(
            Medication.objects, 'select_for_update', wraps=Medication.objects.select_for_update
        ) as locked:
            adjust_stock_level(
                medication_id=stocked_paracetamol.id,
                new_level=140,
                reason_code=AdjustmentReason.CYCLE_COUNT,
                user=doctor,
            )

        # once for the counted level, once inside record_stock_movement
        assert locked.call_count == 2

    def test_unchanged_level_rejected(self, stocked_paracetamol, doctor):
        with pytest.raises(InvalidAdjustmentError):
            adjust_stock_level(
                medication_id=stocked_paracetamol.id,
                new_level=160,
                reason_code=AdjustmentReason.CYCLE_COUNT,
                user=doctor,
            )

    def test_unknown_reason_rejected(self, stocked_paracetamol, doctor):
        with pytest.raises(InvalidAdjustmentError):
            adjust_stock_level(
                medication_id=stocked_paracetamol.id,
                new_level=100,
                reason_code='lost_in_the_post',
                user=doctor,
            )


@pytest.mark.django_db
class TestStockReconciliation:

    def test_stock_equals_sum_of_deltas(self, stocked_paracetamol, doctor):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=30,
        )
        adjust_stock_level(
            medication_id=stocked_paracetamol.id,
            new_level=125,
            reason_code=AdjustmentReason.COUNT_ERROR,
            user=doctor,
        )

        stocked_paracetamol.refresh_from_db()
        assert calculate_stock_from_movements(stocked_paracetamol) == stocked_paracetamol.stock_level == 125
        assert reconcile_stock_levels() == []

    def test_mismatch_reported_and_fixed(self, stocked_paracetamol):
        Medication.objects.filter(id=stocked_paracetamol.id).update(stock_level=5)

        mismatches = reconcile_stock_levels()
        assert len(mismatches) == 1
        assert mismatches[0]['calculated_stock'] == 160
        assert mismatches[0]['difference'] == 155

        reconcile_stock_levels(fix=True)
        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.stock_level == 160

    def test_check_stock_sync_command(self, stocked_paracetamol):
        Medication.objects.filter(id=stocked_paracetamol.id).update(stock_level=5)
        out = StringIO()

        call_command('check_stock_sync', stdout=out)

        assert 'Found 1 mismatch' in out.getvalue()
        assert 'Run with --fix' in out.getvalue()

    def test_check_stock_sync_clean(self, stocked_paracetamol):
        out = StringIO()
        call_command('check_stock_sync', '--fix', stdout=out)

        assert 'All stock levels match' in out.getvalue()


# =============================================================================
# Batches and FIFO
# =============================================================================

@pytest.mark.parametrize('days,expected', [
    (-5, 'expired'),
    (0, 'expired'),
    (1, 'expiring_soon'),
    (30, 'expiring_soon'),
    (31, 'warning'),
    (90, 'warning'),
    (91, 'good'),
])
def test_classify_expiry(days, expected):
    assert classify_expiry(days) == expected


@pytest.mark.django_db
class TestBatches:

    def test_batches_sorted_by_expiry(self, stocked_paracetamol):
        batches = get_batches()

        assert [b['batch_number'] for b in batches] == ['PCM-A', 'PCM-B']
        assert batches[0]['status'] == 'expiring_soon'
        assert batches[0]['days_to_expiry'] == 20
        assert batches[1]['status'] == 'good'

    def test_batch_quantities_follow_movements(self, stocked_paracetamol, today):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=25,
            batch_number='PCM-A',
            expiry_date=today + timedelta(days=20),
        )

        batch = get_batches(search='pcm-a')[0]
        assert batch['quantity_received'] == 60
        assert batch['quantity_dispensed'] == 25
        assert batch['current_quantity'] == 35
        assert batch['total_value'] == Decimal('4.20')

    def test_empty_batches_are_hidden(self, stocked_paracetamol, today):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=60,
            batch_number='PCM-A',
            expiry_date=today + timedelta(days=20),
        )

        assert [b['batch_number'] for b in get_batches()] == ['PCM-B']

    def test_movements_without_expiry_are_ignored(self, paracetamol):
        record_stock_movement(
            medication_id=paracetamol.id,
            movement_type=MovementType.RECEIPT,
            quantity=10,
            batch_number='NO-EXP',
        )

        assert get_batches() == []

    def test_status_filter_and_statistics(self, stocked_paracetamol):
        batches = get_batches(status='good')
        assert [b['batch_number'] for b in batches] == ['PCM-B']

        stats = get_batch_statistics(get_batches())
        assert stats['total_batches'] == 2
        assert stats['expiring_soon'] == 1
        assert stats['total_quantity'] == 160

    def test_fifo_recommends_oldest_batch(self, stocked_paracetamol, amoxicillin, today):
        record_stock_movement(
            medication_id=amoxicillin.id,
            movement_type=MovementType.RECEIPT,
            quantity=30,
            batch_number='AMX-1',
            expiry_date=today + timedelta(days=5),
        )

        recommendations = get_fifo_recommendations()

        # Single-batch medications have nothing to choose between
        assert len(recommendations) == 1
        recommendation = recommendations[0]
        assert recommendation['medication_id'] == stocked_paracetamol.id
        assert recommendation['oldest_batch']['batch_number'] == 'PCM-A'
        assert [b['batch_number'] for b in recommendation['batches']] == ['PCM-A', 'PCM-B']
        assert recommendation['total_quantity'] == 160


# =============================================================================
# Alerts
# =============================================================================

@pytest.mark.parametrize('days,expected', [
    (-1, ('expired', 'critical')),
    (0, ('expired', 'critical')),
    (7, ('expiring_soon', 'critical')),
    (8, ('expiring_soon', 'high')),
    (30, ('expiring_soon', 'high')),
    (90, ('expiring_soon', 'medium')),
    (91, None),
])
def test_expiry_priority(days, expected):
    assert expiry_priority(days) == expected


@pytest.mark.django_db
class TestExpiryAlerts:

    @pytest.fixture
    def alerting_stock(self, stocked_paracetamol, amoxicillin, today):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.RECEIPT,
            quantity=5,
            batch_number='PCM-OLD',
            expiry_date=today - timedelta(days=3),
        )
        return stocked_paracetamol

    def test_alerts_most_urgent_first(self, alerting_stock):
        alerts = get_expiry_alerts()

        assert [(a['alert_type'], a['priority']) for a in alerts] == [
            ('expired', 'critical'),
            ('out_of_stock', 'critical'),
            ('expiring_soon', 'high'),
        ]
        assert alerts[0]['batch_number'] == 'PCM-OLD'
        assert alerts[0]['days_to_expiry'] == -3
        assert alerts[2]['batch_number'] == 'PCM-A'

    def test_filter_by_priority(self, alerting_stock):
        alerts = get_expiry_alerts(priority='high')

        assert len(alerts) == 1
        assert alerts[0]['message'].endswith('expires in 20 day(s)')

    def test_low_stock_alert(self, amoxicillin):
        record_stock_movement(
            medication_id=amoxicillin.id,
            movement_type=MovementType.RECEIPT,
            quantity=5,
        )

        alerts = get_expiry_alerts(alert_type='low_stock')
        assert len(alerts) == 1
        assert alerts[0]['priority'] == 'high'

    def test_batch_quantity_follows_signed_adjustments(self, amoxicillin, today):
        for quantity, movement_type, reason in [
            (10, MovementType.RECEIPT, ''),
            (5, MovementType.ADJUSTMENT, AdjustmentReason.COUNT_ERROR),
            (-3, MovementType.ADJUSTMENT, AdjustmentReason.DAMAGED),
        ]:
            record_stock_movement(
                medication_id=amoxicillin.id,
                movement_type=movement_type,
                quantity=quantity,
                batch_number='AMX-B1',
                expiry_date=today + timedelta(days=20),
                reason_code=reason,
            )

        alert = next(a for a in get_expiry_alerts() if a['batch_number'] == 'AMX-B1')
        batch = next(b for b in get_batches(medication_id=amoxicillin.id) if b['batch_number'] == 'AMX-B1')

        assert alert['quantity'] == 12
        assert batch['current_quantity'] == 12

    def test_summary_counts(self, alerting_stock):
        summary = get_alert_summary()

        assert summary['total'] == 3
        assert summary['by_priority']['critical'] == 2
        assert summary['by_type']['expiring_soon'] == 1


# =============================================================================
# Valuation
# =============================================================================

@pytest.mark.django_db
class TestValuation:

    def test_variance_is_significant_above_five_percent(self, stocked_paracetamol):
        valuation = calculate_inventory_value()
        item = valuation['items'][0]

        assert item['value_cost_price'] == Decimal('16.00')
        assert item['value_average_cost'] == Decimal('17.20')
        assert item['variance_percent'] == Decimal('7.50')
        assert item['is_significant'] is True
        assert valuation['totals']['significant_variances'] == 1

    def test_empty_stock_has_no_variance(self, amoxicillin):
        item = calculate_inventory_value(category='antibiotic')['items'][0]

        assert item['variance_percent'] == Decimal('0.00')
        assert item['is_significant'] is False

    def test_recalculate_average_cost(self, stocked_paracetamol):
        Medication.objects.filter(id=stocked_paracetamol.id).update(average_cost=Decimal('0'))

        medication = recalculate_average_cost(medication_id=stocked_paracetamol.id)

        assert medication.average_cost == Decimal('0.1075')

    def test_update_historical_cost(self, stocked_paracetamol):
        first_receipt = stocked_paracetamol.stock_movements.get(batch_number='PCM-B')

        movement = update_historical_cost(movement_id=first_receipt.id, new_unit_cost=Decimal('0.12'))

        assert movement.total_cost == Decimal('12.00')
        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.average_cost == Decimal('0.1200')

    def test_historical_cost_only_for_receipts(self, stocked_paracetamol):
        dispense = record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=1,
        )
        with pytest.raises(NotAReceiptError):
            update_historical_cost(movement_id=dispense.id, new_unit_cost=Decimal('1.00'))

    def test_compare_purchase_prices(self, stocked_paracetamol):
        comparison = compare_purchase_prices(medication_id=stocked_paracetamol.id)

        assert comparison['receipt_count'] == 2
        assert comparison['min_cost'] == Decimal('0.1000')
        assert comparison['max_cost'] == Decimal('0.1200')
        assert comparison['last_cost'] == Decimal('0.1200')


# =============================================================================
# Reorder suggestions
# =============================================================================

@pytest.mark.django_db
class TestReorderSuggestions:

    def test_out_of_stock_is_urgent(self, amoxicillin):
        suggestion = build_suggestion(amoxicillin)

        assert suggestion['priority_level'] == SuggestionPriority.URGENT
        assert suggestion['reason'] == SuggestionReason.OUT_OF_STOCK
        assert suggestion['suggested_quantity'] == 40
        assert suggestion['cost_estimate'] == Decimal('20.00')

    def test_high_consumption(self, stocked_paracetamol):
        record_stock_movement(
            medication_id=stocked_paracetamol.id,
            movement_type=MovementType.DISPENSED,
            quantity=150,
        )
        stocked_paracetamol.refresh_from_db()

        suggestion = build_suggestion(stocked_paracetamol)

        # 5 per day leaves two days of cover; target is 30 days of use
        assert suggestion['average_consumption_daily'] == Decimal('5.00')
        assert suggestion['priority_level'] == SuggestionPriority.HIGH
        assert suggestion['reason'] == SuggestionReason.HIGH_CONSUMPTION
        assert suggestion['suggested_quantity'] == 140

    def test_generate_skips_open_suggestions(self, stocked_paracetamol, amoxicillin):
        created = generate_reorder_suggestions()

        assert [s.medication_id for s in created] == [amoxicillin.id]
        assert generate_reorder_suggestions() == []

    def test_status_workflow(self, amoxicillin):
        suggestion = generate_reorder_suggestions()[0]

        with pytest.raises(InvalidStatusTransitionError):
            update_suggestion_status(suggestion_id=suggestion.id, status=SuggestionStatus.ORDERED)

        suggestion = update_suggestion_status(suggestion_id=suggestion.id, status=SuggestionStatus.APPROVED)
        assert suggestion.status == SuggestionStatus.APPROVED
        assert ReorderSuggestion.objects.get(id=suggestion.id).status == SuggestionStatus.APPROVED


# =============================================================================
# Medication management and import
# =============================================================================

@pytest.mark.django_db
class TestMedicationManagement:

    def test_create_requires_price_tier(self):
        with pytest.raises(NoPriceTiersError):
            create_medication(name='Ibuprofen 200mg')

    def test_create_with_opening_stock(self, price_tier, today):
        medication = create_medication(
            name='Ibuprofen 200mg',
            cost_price=Decimal('0.20'),
            pricing={str(price_tier.id): Decimal('0.80')},
            opening_stock=50,
            batch_number='IBU-1',
            expiry_date=today + timedelta(days=365),
        )

        assert medication.stock_level == 50
        assert medication.average_cost == Decimal('0.2000')
        assert medication.tier_prices.get().price == Decimal('0.80')
        receipt = StockMovement.objects.get(medication=medication)
        assert receipt.reason == 'Opening stock'

    def test_find_similar_medications(self, paracetamol, amoxicillin):
        matches = find_similar_medications(name='paracetamol 500 mg')

        assert [m.id for m, _ in matches] == [paracetamol.id]
        assert find_similar_medications(name='Paracetamol 500mg', exclude_id=paracetamol.id) == []


@pytest.mark.django_db
class TestMedicationImport:

    def _csv(self, content):
        return SimpleUploadedFile('medications.csv', content.encode('utf-8'), content_type='text/csv')

    def test_import_creates_and_updates(self, stocked_paracetamol, price_tier, admin_user):
        upload = self._csv(
            "Name,Category,Cost Price,Stock Level,Standard Price\n"
            "Cetirizine 10mg,Antihistamine,0.15,30,0.60\n"
            "paracetamol 500mg,Analgesic,0.11,150,0.40\n"
        )

        result = import_medications(file=upload, user=admin_user)

        assert result == {'created': 1, 'updated': 1, 'errors': []}
        cetirizine = Medication.objects.get(name='Cetirizine 10mg')
        assert cetirizine.stock_level == 30
        assert cetirizine.tier_prices.get(tier=price_tier).price == Decimal('0.60')

        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.stock_level == 150
        adjustment = stocked_paracetamol.stock_movements.get(movement_type=MovementType.ADJUSTMENT)
        assert adjustment.quantity == -10
        assert adjustment.reason_code == AdjustmentReason.CYCLE_COUNT

    def test_update_saves_descriptive_fields_only(self, stocked_paracetamol, price_tier):
        upload = self._csv(
            "Name,Category,Remarks\n"
            "Paracetamol 500mg,Analgesic,Store below 25C\n"
        )

        with patch.object(
            Medication.objects, 'select_for_update', wraps=Medication.objects.select_for_update
        ) as locked, patch.object(Medication, 'save', autospec=True, side_effect=Medication.save) as save:
            result = import_medications(file=upload)

        assert result['updated'] == 1
        assert locked.call_count == 1
        update_fields = save.call_args.kwargs['update_fields']
        assert 'remarks' in update_fields
        assert 'stock_level' not in update_fields
        assert 'average_cost' not in update_fields

        stocked_paracetamol.refresh_from_db()
        assert stocked_paracetamol.remarks == 'Store below 25C'
        assert stocked_paracetamol.stock_level == 160
        assert stocked_paracetamol.average_cost == Decimal('0.1075')

    def test_xlsx_import(self, price_tier):
        workbook = Workbook()
        sheet = workbook.active
        sheet.append(['Name', 'Unit of Measure (UOM)', 'Cost Price (RM)', 'Stock Level', 'Standard Price'])
        sheet.append(['Loratadine 10mg', 'tablet', 0.2, 25, 0.9])
        buffer = BytesIO()
        workbook.save(buffer)
        upload = SimpleUploadedFile(
            'medications.xlsx',
            buffer.getvalue(),
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )

        result = import_medications(file=upload)

        assert result == {'created': 1, 'updated': 0, 'errors': []}
        loratadine = Medication.objects.get(name='Loratadine 10mg')
        assert loratadine.unit_of_measure == 'tablet'
        assert loratadine.cost_price == Decimal('0.20')
        assert loratadine.stock_level == 25
        assert loratadine.tier_prices.get(tier=price_tier).price == Decimal('0.90')

    def test_invalid_rows_write_nothing(self, price_tier):
        upload = self._csv(
            "Name,Cost Price\n"
            "Cetirizine 10mg,abc\n"
            ",0.20\n"
        )

        result = import_medications(file=upload)

        assert result['created'] == 0
        assert {'row': 2, 'column': 'Cost Price', 'error': 'Must be a valid number'} in result['errors']
        assert {'row': 3, 'column': 'name', 'error': 'Name is required'} in result['errors']
        assert not Medication.objects.exists()

    def test_rejects_unknown_extension(self, price_tier):
        upload = SimpleUploadedFile('medications.txt', b'Name\nX\n')

        with pytest.raises(ImportFileError):
            import_medications(file=upload)
