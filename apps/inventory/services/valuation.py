"""Inventory valuation and moving-average cost history."""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db import transaction
from django.db.models import Min, Max, Avg

from apps.inventory.models import Medication, StockMovement, MovementType
from .exceptions import NotAReceiptError, InvalidQuantityError

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
COST_PRECISION = Decimal('0.0001')
SIGNIFICANT_VARIANCE_PERCENT = Decimal('5')


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if not whole:
        return Decimal('0.00')
    return (part / whole * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def value_medication(medication: Medication) -> dict:
    """Cost-price vs average-cost valuation of one medication's stock."""
    value_cost_price = (medication.stock_level * medication.cost_price).quantize(CENT)
    value_average_cost = (medication.stock_level * medication.average_cost).quantize(CENT)
    variance = value_average_cost - value_cost_price
    variance_percent = _percent(variance, value_cost_price)
    return {
        'medication_id': medication.id,
        'medication_name': medication.name,
        'category': medication.category,
        'stock_level': medication.stock_level,
        'cost_price': medication.cost_price,
        'average_cost': medication.average_cost,
        'value_cost_price': value_cost_price,
        'value_average_cost': value_average_cost,
        'variance': variance,
        'variance_percent': variance_percent,
        'is_significant': abs(variance_percent) > SIGNIFICANT_VARIANCE_PERCENT,
    }


def calculate_inventory_value(*, category: Optional[str] = None) -> dict:
    """
    Value active stock at cost price and at moving-average cost.

    Args:
        category: Restrict to one medication category

    Returns:
        dict with ``items`` (per medication) and ``totals``
    """
    medications = Medication.objects.filter(is_active=True)
    if category:
        medications = medications.filter(category__iexact=category)

    items = [value_medication(m) for m in medications]

    total_cost_price = sum((i['value_cost_price'] for i in items), Decimal('0.00'))
    total_average_cost = sum((i['value_average_cost'] for i in items), Decimal('0.00'))
    total_variance = total_average_cost - total_cost_price

    return {
        'items': items,
        'totals': {
            'item_count': len(items),
            'total_quantity': sum(i['stock_level'] for i in items),
            'value_cost_price': total_cost_price,
            'value_average_cost': total_average_cost,
            'variance': total_variance,
            'variance_percent': _percent(total_variance, total_cost_price),
            'significant_variances': sum(1 for i in items if i['is_significant']),
        },
    }


@transaction.atomic
def recalculate_average_cost(*, medication_id) -> Medication:
    """
    Rebuild the moving-average cost from the full movement history.

    Walks movements oldest first. A receipt into empty stock (or the first
    receipt ever) sets the average to its unit cost; later receipts blend
    ``(stock * avg + qty * cost) / (stock + qty)``. Other movements only
    change the running stock. Each receipt's ``cost_per_unit_after`` is
    rewritten.

    Returns:
        The updated Medication
    """
    medication = Medication.objects.select_for_update().get(id=medication_id)
    movements = list(medication.stock_movements.order_by('created_at'))

    running_stock = 0
    average = None
    changed = []

    for movement in movements:
        if movement.movement_type == MovementType.RECEIPT:
            cost = movement.unit_cost
            if average is None or running_stock <= 0:
                average = cost
            else:
                average = (
                    (running_stock * average + movement.quantity * cost) /
                    (running_stock + movement.quantity)
                )
            average = average.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)
            running_stock += movement.quantity
            if movement.cost_per_unit_after != average:
                movement.cost_per_unit_after = average
                changed.append(movement)
        else:
            running_stock = max(0, running_stock + movement.delta)

    if changed:
        StockMovement.objects.bulk_update(changed, ['cost_per_unit_after'])

    medication.average_cost = average if average is not None else Decimal('0.0000')
    medication.save(update_fields=['average_cost', 'updated_at'])
    logger.info("Recalculated average cost of %s: %s", medication.name, medication.average_cost)
    return medication


def get_cost_history(*, medication_id):
    """Receipts of a medication, oldest first, with the average after each."""
    return (
        StockMovement.objects
        .filter(medication_id=medication_id, movement_type=MovementType.RECEIPT)
        .select_related('purchase_order', 'created_by')
        .order_by('created_at')
    )


@transaction.atomic
def update_historical_cost(*, movement_id, new_unit_cost: Decimal, user=None) -> StockMovement:
    """
    Correct the unit cost of a past receipt and rebuild the average cost.

    Raises:
        NotAReceiptError: If the movement is not a receipt
        InvalidQuantityError: If the new cost is negative
    """
    movement = StockMovement.objects.select_for_update().get(id=movement_id)
    if movement.movement_type != MovementType.RECEIPT:
        raise NotAReceiptError("Only receipt costs can be updated")

    new_unit_cost = Decimal(str(new_unit_cost))
    if new_unit_cost < 0:
        raise InvalidQuantityError("Unit cost cannot be negative")

    old_cost = movement.unit_cost
    movement.unit_cost = new_unit_cost
    movement.total_cost = (movement.quantity * new_unit_cost).quantize(CENT, rounding=ROUND_HALF_UP)
    movement.save(update_fields=['unit_cost', 'total_cost'])

    recalculate_average_cost(medication_id=movement.medication_id)
    movement.refresh_from_db()

    logger.info(
        "Receipt %s unit cost changed %s -> %s by %s",
        movement.id,
        old_cost,
        new_unit_cost,
        getattr(user, 'email', 'system'),
    )
    return movement


def compare_purchase_prices(*, medication_id) -> dict:
    """Min / max / average receipt unit cost and the most recent one."""
    receipts = StockMovement.objects.filter(
        medication_id=medication_id,
        movement_type=MovementType.RECEIPT
    )
    stats = receipts.aggregate(
        min_cost=Min('unit_cost'),
        max_cost=Max('unit_cost'),
        avg_cost=Avg('unit_cost'),
    )
    last = receipts.order_by('-created_at').first()
    avg_cost = stats['avg_cost']
    return {
        'receipt_count': receipts.count(),
        'min_cost': stats['min_cost'],
        'max_cost': stats['max_cost'],
        'avg_cost': Decimal(str(avg_cost)).quantize(COST_PRECISION) if avg_cost is not None else None,
        'last_cost': last.unit_cost if last else None,
        'last_received_at': last.created_at if last else None,
    }
