"""
Batch aggregation, expiry classification and FIFO recommendations.

Batches are not stored. They are derived from stock movements that carry
both a batch number and an expiry date, grouped by (medication, batch).
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from django.utils import timezone

from apps.inventory.models import StockMovement, MovementType, OUTGOING_MOVEMENT_TYPES


EXPIRED = 'expired'
EXPIRING_SOON = 'expiring_soon'
WARNING = 'warning'
GOOD = 'good'

EXPIRING_SOON_DAYS = 30
WARNING_DAYS = 90

BATCH_SORT_KEYS = ('expiry_date', 'medication', 'quantity', 'value')


def days_until(expiry_date: date, today: Optional[date] = None) -> int:
    """Whole days from ``today`` to ``expiry_date`` (negative when past)."""
    today = today or timezone.localdate()
    return (expiry_date - today).days


def classify_expiry(days_to_expiry: int) -> str:
    """Bucket days-to-expiry into expired / expiring_soon / warning / good."""
    if days_to_expiry <= 0:
        return EXPIRED
    if days_to_expiry <= EXPIRING_SOON_DAYS:
        return EXPIRING_SOON
    if days_to_expiry <= WARNING_DAYS:
        return WARNING
    return GOOD


def aggregate_batches(
    movements: Iterable[StockMovement],
    today: Optional[date] = None,
    include_empty: bool = False
) -> List[dict]:
    """
    Fold movements into per-batch totals.

    Movements must be supplied oldest first. Only movements with both a
    batch number and an expiry date take part.

    Args:
        movements: StockMovement instances (medication pre-selected)
        today: Reference date for days_to_expiry
        include_empty: Keep batches whose current quantity is zero or less

    Returns:
        List of batch dicts
    """
    today = today or timezone.localdate()
    batches = {}

    for movement in movements:
        if not movement.batch_number or not movement.expiry_date:
            continue

        key = (movement.medication_id, movement.batch_number)
        batch = batches.get(key)
        if batch is None:
            batch = batches[key] = {
                'medication_id': movement.medication_id,
                'medication_name': movement.medication.name,
                'batch_number': movement.batch_number,
                'expiry_date': movement.expiry_date,
                'quantity_received': 0,
                'quantity_dispensed': 0,
                'quantity_adjusted': 0,
                'current_quantity': 0,
                'unit_cost': movement.unit_cost,
                'first_received': movement.created_at,
                'last_movement': movement.created_at,
                '_has_receipt': False,
            }

        if movement.movement_type == MovementType.RECEIPT:
            if not batch['_has_receipt']:
                batch['expiry_date'] = movement.expiry_date
                batch['first_received'] = movement.created_at
                batch['_has_receipt'] = True
            batch['quantity_received'] += movement.quantity
            batch['current_quantity'] += movement.quantity
        elif movement.movement_type in OUTGOING_MOVEMENT_TYPES:
            batch['quantity_dispensed'] += movement.quantity
            batch['current_quantity'] -= movement.quantity
        else:
            batch['quantity_adjusted'] += abs(movement.quantity)
            batch['current_quantity'] += movement.quantity

        batch['last_movement'] = movement.created_at

    result = []
    for batch in batches.values():
        batch.pop('_has_receipt')
        if batch['current_quantity'] <= 0 and not include_empty:
            continue
        days = days_until(batch['expiry_date'], today)
        batch['days_to_expiry'] = days
        batch['status'] = classify_expiry(days)
        batch['total_value'] = (
            Decimal(batch['current_quantity']) * batch['unit_cost']
        ).quantize(Decimal('0.01'))
        result.append(batch)
    return result


def sort_batches(batches: List[dict], sort_by: str = 'expiry_date') -> List[dict]:
    """Sort batches for display. Quantity and value sort descending."""
    if sort_by == 'medication':
        return sorted(batches, key=lambda b: (b['medication_name'].lower(), b['expiry_date']))
    if sort_by == 'quantity':
        return sorted(batches, key=lambda b: b['current_quantity'], reverse=True)
    if sort_by == 'value':
        return sorted(batches, key=lambda b: b['total_value'], reverse=True)
    return sorted(batches, key=lambda b: (b['expiry_date'], b['medication_name'].lower()))


def get_batches(
    *,
    search: Optional[str] = None,
    medication_id=None,
    status: Optional[str] = None,
    sort_by: str = 'expiry_date',
    today: Optional[date] = None
) -> List[dict]:
    """
    Current batches with stock on hand.

    Args:
        search: Case-insensitive match on medication name or batch number
        medication_id: Restrict to one medication
        status: Restrict to one expiry status
        sort_by: expiry_date | medication | quantity | value
        today: Reference date

    Returns:
        Sorted list of batch dicts
    """
    movements = (
        StockMovement.objects
        .exclude(batch_number='')
        .filter(expiry_date__isnull=False)
        .select_related('medication')
        .order_by('created_at')
    )
    if medication_id:
        movements = movements.filter(medication_id=medication_id)

    batches = aggregate_batches(movements, today=today)

    if search:
        term = search.lower()
        batches = [
            b for b in batches
            if term in b['medication_name'].lower() or term in b['batch_number'].lower()
        ]
    if status:
        batches = [b for b in batches if b['status'] == status]

    return sort_batches(batches, sort_by)


def get_batch_statistics(batches: List[dict]) -> dict:
    """Counts per expiry status plus total quantity and value."""
    return {
        'total_batches': len(batches),
        'expired': sum(1 for b in batches if b['status'] == EXPIRED),
        'expiring_soon': sum(1 for b in batches if b['status'] == EXPIRING_SOON),
        'warning': sum(1 for b in batches if b['status'] == WARNING),
        'total_value': sum((b['total_value'] for b in batches), Decimal('0.00')),
        'total_quantity': sum(b['current_quantity'] for b in batches),
    }


def get_fifo_recommendations(
    batches: Optional[List[dict]] = None,
    limit: Optional[int] = 5
) -> List[dict]:
    """
    Dispense-first hints for medications held in more than one batch.

    Each recommendation lists the medication's batches by ascending
    expiry date; ``oldest_batch`` is the one to dispense first.
    Recommendations are ordered by the oldest batch's expiry.

    Args:
        batches: Pre-computed batches, defaults to all current batches
        limit: Maximum number of recommendations, None for all
    """
    if batches is None:
        batches = get_batches()

    by_medication = defaultdict(list)
    for batch in batches:
        by_medication[batch['medication_id']].append(batch)

    recommendations = []
    for medication_id, medication_batches in by_medication.items():
        if len(medication_batches) < 2:
            continue
        ordered = sorted(medication_batches, key=lambda b: (b['expiry_date'], b['batch_number']))
        recommendations.append({
            'medication_id': medication_id,
            'medication_name': ordered[0]['medication_name'],
            'oldest_batch': ordered[0],
            'batches': ordered,
            'total_quantity': sum(b['current_quantity'] for b in ordered),
        })

    recommendations.sort(key=lambda r: r['oldest_batch']['expiry_date'])
    if limit is not None:
        recommendations = recommendations[:limit]
    return recommendations
