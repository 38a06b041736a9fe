"""Expiry and stock-level alerts."""

from datetime import date
from typing import List, Optional

from django.utils import timezone

from apps.inventory.models import Medication, StockMovement, MovementType
from .batch_tracking import days_until


PRIORITY_ORDER = {'critical': 0, 'high': 1, 'medium': 2, 'low': 3}

ALERT_EXPIRED = 'expired'
ALERT_EXPIRING_SOON = 'expiring_soon'
ALERT_LOW_STOCK = 'low_stock'
ALERT_OUT_OF_STOCK = 'out_of_stock'

NO_BATCH = 'no-batch'


def expiry_priority(days_to_expiry: int) -> Optional[tuple]:
    """Return (alert_type, priority) for a lot, or None when no alert is due."""
    if days_to_expiry <= 0:
        return ALERT_EXPIRED, 'critical'
    if days_to_expiry <= 7:
        return ALERT_EXPIRING_SOON, 'critical'
    if days_to_expiry <= 30:
        return ALERT_EXPIRING_SOON, 'high'
    if days_to_expiry <= 90:
        return ALERT_EXPIRING_SOON, 'medium'
    return None


def _expiry_alerts(today: date) -> List[dict]:
    lots = {}
    movements = (
        StockMovement.objects
        .filter(medication__is_active=True)
        .select_related('medication')
        .order_by('created_at')
    )
    for movement in movements:
        key = (movement.medication_id, movement.batch_number or NO_BATCH)
        lot = lots.setdefault(key, {
            'medication': movement.medication,
            'batch_number': movement.batch_number or NO_BATCH,
            'expiry_date': None,
            'quantity': 0,
        })
        lot['quantity'] += movement.delta
        if movement.movement_type == MovementType.RECEIPT and movement.expiry_date:
            if lot['expiry_date'] is None:
                lot['expiry_date'] = movement.expiry_date

    alerts = []
    for (medication_id, batch_number), lot in lots.items():
        if lot['quantity'] <= 0 or lot['expiry_date'] is None:
            continue
        days = days_until(lot['expiry_date'], today)
        classified = expiry_priority(days)
        if classified is None:
            continue
        alert_type, priority = classified
        name = lot['medication'].name
        if alert_type == ALERT_EXPIRED:
            message = f"{name} batch {batch_number} has expired ({lot['quantity']} units)"
        else:
            message = f"{name} batch {batch_number} expires in {days} day(s)"
        alerts.append({
            'id': f"{alert_type}-{medication_id}-{batch_number}",
            'alert_type': alert_type,
            'priority': priority,
            'medication_id': medication_id,
            'medication_name': name,
            'batch_number': batch_number,
            'expiry_date': lot['expiry_date'],
            'days_to_expiry': days,
            'quantity': lot['quantity'],
            'message': message,
        })
    return alerts


def _stock_alerts() -> List[dict]:
    alerts = []
    for medication in Medication.objects.filter(is_active=True):
        if medication.is_out_of_stock:
            alert_type, priority = ALERT_OUT_OF_STOCK, 'critical'
            message = f"{medication.name} is out of stock"
        elif medication.is_low_stock:
            alert_type, priority = ALERT_LOW_STOCK, 'high'
            message = (
                f"{medication.name} is low on stock "
                f"({medication.stock_level} / threshold {medication.low_stock_threshold})"
            )
        else:
            continue
        alerts.append({
            'id': f"{alert_type}-{medication.id}",
            'alert_type': alert_type,
            'priority': priority,
            'medication_id': medication.id,
            'medication_name': medication.name,
            'batch_number': None,
            'expiry_date': None,
            'days_to_expiry': None,
            'quantity': medication.stock_level,
            'message': message,
        })
    return alerts


def get_expiry_alerts(
    *,
    alert_type: Optional[str] = None,
    priority: Optional[str] = None,
    today: Optional[date] = None
) -> List[dict]:
    """
    All expiry and stock alerts, most urgent first.

    Sorted by priority (critical, high, medium, low), then by days to
    expiry ascending; stock alerts without an expiry sort after expiry
    alerts of the same priority.
    """
    today = today or timezone.localdate()
    alerts = _expiry_alerts(today) + _stock_alerts()

    if alert_type:
        alerts = [a for a in alerts if a['alert_type'] == alert_type]
    if priority:
        alerts = [a for a in alerts if a['priority'] == priority]

    def sort_key(alert):
        days = alert['days_to_expiry']
        return (
            PRIORITY_ORDER.get(alert['priority'], len(PRIORITY_ORDER)),
            days is None,
            days if days is not None else 0,
        )

    return sorted(alerts, key=sort_key)


def get_alert_summary(alerts: Optional[List[dict]] = None) -> dict:
    """Count alerts per type and per priority."""
    if alerts is None:
        alerts = get_expiry_alerts()

    by_type = {t: 0 for t in (ALERT_EXPIRED, ALERT_EXPIRING_SOON, ALERT_LOW_STOCK, ALERT_OUT_OF_STOCK)}
    by_priority = {p: 0 for p in PRIORITY_ORDER}
    for alert in alerts:
        by_type[alert['alert_type']] += 1
        by_priority[alert['priority']] += 1

    return {
        'total': len(alerts),
        'by_type': by_type,
        'by_priority': by_priority,
    }
