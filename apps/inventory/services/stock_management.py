"""
Stock movement service.

Every change to ``Medication.stock_level`` goes through
``record_stock_movement`` so that stock-on-hand always equals the sum of
the signed movement deltas for the medication.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db import transaction
from django.db.models import Q, QuerySet, F

from apps.accounts.services import has_clinic_permission
from apps.inventory.models import (
    Medication,
    StockMovement,
    MovementType,
    AdjustmentReason,
    OUTGOING_MOVEMENT_TYPES,
    DEFAULT_LOW_STOCK_THRESHOLD,
)
from .exceptions import (
    MedicationNotFoundError,
    InvalidQuantityError,
    InsufficientStockError,
    InvalidAdjustmentError,
    StockAdjustmentPermissionError,
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
COST_PRECISION = Decimal('0.0001')


def movement_delta(movement_type: str, quantity: int) -> int:
    """Signed stock change for a movement of ``movement_type``."""
    if movement_type == MovementType.RECEIPT:
        return quantity
    if movement_type in OUTGOING_MOVEMENT_TYPES:
        return -quantity
    return quantity


def _next_average_cost(
    medication: Medication,
    previous_stock: int,
    quantity: int,
    unit_cost: Decimal,
    has_cost_basis: bool,
) -> Decimal:
    """Moving average after receiving ``quantity`` units at ``unit_cost``."""
    if previous_stock <= 0 or not has_cost_basis:
        return unit_cost.quantize(COST_PRECISION)
    total = previous_stock * medication.average_cost + quantity * unit_cost
    return (total / (previous_stock + quantity)).quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


@transaction.atomic
def record_stock_movement(
    *,
    medication_id,
    movement_type: str,
    quantity: int,
    unit_cost: Optional[Decimal] = None,
    batch_number: str = '',
    expiry_date: Optional[date] = None,
    reference_number: str = '',
    reason: str = '',
    reason_code: str = '',
    notes: str = '',
    purchase_order=None,
    created_by=None
) -> StockMovement:
    """
    Record a stock movement and update the medication's stock level.

    The medication row is locked for the duration of the transaction so
    concurrent movements serialize on it.

    Args:
        medication_id: UUID of the medication
        movement_type: One of MovementType values
        quantity: Units moved. Positive for receipt/dispensed/expired/damaged;
            signed and non-zero for adjustment
        unit_cost: Cost per unit, defaults to the medication's cost_price
        batch_number: Batch / lot number
        expiry_date: Batch expiry date
        reference_number: External reference (PO number, invoice, ...)
        reason: Free-text reason
        reason_code: AdjustmentReason code for adjustments
        notes: Additional notes
        purchase_order: Source PurchaseOrder for receipts
        created_by: Staff member recording the movement

    Returns:
        Created StockMovement

    Raises:
        MedicationNotFoundError: If the medication doesn't exist
        InvalidQuantityError: If the quantity is invalid for the type
        InsufficientStockError: If an outgoing movement exceeds stock
    """
    try:
        medication = Medication.objects.select_for_update().get(id=medication_id)
    except Medication.DoesNotExist:
        raise MedicationNotFoundError("Medication not found")

    if movement_type not in MovementType.values:
        raise InvalidQuantityError(f"Unknown movement type: {movement_type}")

    if movement_type == MovementType.ADJUSTMENT:
        if quantity == 0:
            raise InvalidQuantityError("Adjustment quantity cannot be zero")
    elif quantity <= 0:
        raise InvalidQuantityError("Quantity must be greater than zero")

    previous_stock = medication.stock_level
    delta = movement_delta(movement_type, quantity)
    new_stock = previous_stock + delta

    if new_stock < 0:
        raise InsufficientStockError(
            f"Insufficient Stock: {medication.name} has {previous_stock} "
            f"{medication.unit_of_measure or 'units'} on hand, cannot remove {abs(delta)}"
        )

    unit_cost = Decimal(str(unit_cost)) if unit_cost is not None else medication.cost_price
    total_cost = (abs(quantity) * unit_cost).quantize(CENT, rounding=ROUND_HALF_UP)

    cost_per_unit_after = None
    update_fields = ['stock_level', 'updated_at']
    if movement_type == MovementType.RECEIPT:
        has_cost_basis = medication.stock_movements.filter(
            movement_type=MovementType.RECEIPT
        ).exists()
        cost_per_unit_after = _next_average_cost(
            medication, previous_stock, quantity, unit_cost, has_cost_basis
        )
        medication.average_cost = cost_per_unit_after
        update_fields.append('average_cost')

    movement = StockMovement.objects.create(
        medication=medication,
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        unit_cost=unit_cost,
        total_cost=total_cost,
        cost_per_unit_after=cost_per_unit_after,
        reference_number=reference_number,
        reason=reason,
        reason_code=reason_code,
        notes=notes,
        batch_number=batch_number or '',
        expiry_date=expiry_date,
        purchase_order=purchase_order,
        created_by=created_by,
    )

    medication.stock_level = new_stock
    medication.save(update_fields=update_fields)

    logger.info(
        "Stock %s for %s: %+d (%d -> %d)",
        movement_type,
        medication.name,
        delta,
        previous_stock,
        new_stock,
    )
    return movement


@transaction.atomic
def adjust_stock_level(
    *,
    medication_id,
    new_level: int,
    reason_code: str,
    notes: str = '',
    user=None
) -> StockMovement:
    """
    Set stock-on-hand to ``new_level`` by recording a signed adjustment.

    Raises:
        StockAdjustmentPermissionError: If the user lacks ``adjust_stock``
        InvalidAdjustmentError: If the level is unchanged, negative or
            the reason code is unknown
    """
    if user is not None and not has_clinic_permission(user, 'adjust_stock'):
        raise StockAdjustmentPermissionError(
            "Only administrators and doctors can adjust stock levels"
        )
    if reason_code not in AdjustmentReason.values:
        raise InvalidAdjustmentError(f"Unknown adjustment reason: {reason_code}")
    if new_level < 0:
        raise InvalidAdjustmentError("Stock level cannot be negative")

    # the counted level is compared under the same lock the movement uses
    try:
        medication = Medication.objects.select_for_update().get(id=medication_id)
    except Medication.DoesNotExist:
        raise MedicationNotFoundError("Medication not found")

    difference = new_level - medication.stock_level
    if difference == 0:
        raise InvalidAdjustmentError("New stock level equals current stock level")

    return record_stock_movement(
        medication_id=medication.id,
        movement_type=MovementType.ADJUSTMENT,
        quantity=difference,
        reason=AdjustmentReason(reason_code).label,
        reason_code=reason_code,
        notes=notes,
        created_by=user,
    )


def get_stock_history(*, medication_id, limit: Optional[int] = None) -> QuerySet:
    """Movements of a medication, newest first."""
    queryset = (
        StockMovement.objects
        .filter(medication_id=medication_id)
        .select_related('created_by', 'purchase_order')
        .order_by('-created_at')
    )
    if limit:
        queryset = queryset[:limit]
    return queryset


def _low_stock_filter() -> Q:
    return (
        Q(reorder_level__isnull=False, stock_level__lte=F('reorder_level')) |
        Q(reorder_level__isnull=True, stock_level__lte=DEFAULT_LOW_STOCK_THRESHOLD)
    )


def get_low_stock_medications() -> QuerySet:
    """Active medications at or below their low-stock threshold (including zero)."""
    return (
        Medication.objects
        .filter(is_active=True)
        .filter(_low_stock_filter())
        .order_by('stock_level', 'name')
    )


def get_stock_summary() -> dict:
    """
    Inventory headline numbers.

    Returns:
        dict with total_items, low_stock_count (0 < level <= threshold),
        out_of_stock_count, total_value (stock x cost_price)
    """
    medications = list(Medication.objects.filter(is_active=True))
    total_value = sum((m.stock_value for m in medications), Decimal('0.00'))
    return {
        'total_items': len(medications),
        'low_stock_count': sum(1 for m in medications if m.is_low_stock),
        'out_of_stock_count': sum(1 for m in medications if m.is_out_of_stock),
        'total_value': total_value.quantize(CENT),
    }


def calculate_stock_from_movements(medication: Medication) -> int:
    """Sum of signed movement deltas for a medication."""
    return sum(m.delta for m in medication.stock_movements.all())


@transaction.atomic
def reconcile_stock_levels(*, fix: bool = False) -> list[dict]:
    """
    Compare each medication's stock_level with its movement history.

    Args:
        fix: When True, mismatched stock levels are overwritten with the
            movement total

    Returns:
        List of mismatches: medication_id, name, stock_level,
        calculated_stock, difference
    """
    mismatches = []
    medications = Medication.objects.prefetch_related('stock_movements')
    for medication in medications:
        calculated = calculate_stock_from_movements(medication)
        if calculated == medication.stock_level:
            continue

        mismatches.append({
            'medication_id': medication.id,
            'name': medication.name,
            'stock_level': medication.stock_level,
            'calculated_stock': calculated,
            'difference': calculated - medication.stock_level,
        })
        if fix:
            medication.stock_level = max(0, calculated)
            medication.save(update_fields=['stock_level', 'updated_at'])
            logger.warning(
                "Corrected stock level of %s to %d", medication.name, medication.stock_level
            )

    return mismatches
