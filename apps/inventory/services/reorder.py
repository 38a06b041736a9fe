"""Reorder suggestion generation and workflow."""

import logging
import math
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.inventory.models import (
    Medication,
    StockMovement,
    MovementType,
    ReorderSuggestion,
    SuggestionPriority,
    SuggestionReason,
    SuggestionStatus,
)
from apps.procurement.models import PurchaseOrderItem
from .exceptions import InvalidStatusTransitionError
from .stock_management import get_low_stock_medications

logger = logging.getLogger(__name__)

CONSUMPTION_WINDOW_DAYS = 30
COVER_DAYS = 30
HIGH_PRIORITY_COVER_DAYS = 7

ALLOWED_TRANSITIONS = {
    SuggestionStatus.PENDING: {SuggestionStatus.APPROVED, SuggestionStatus.DISMISSED},
    SuggestionStatus.APPROVED: {SuggestionStatus.ORDERED, SuggestionStatus.DISMISSED},
    SuggestionStatus.DISMISSED: {SuggestionStatus.PENDING},
    SuggestionStatus.ORDERED: set(),
}


def average_daily_consumption(medication: Medication, days: int = CONSUMPTION_WINDOW_DAYS) -> Decimal:
    """Units dispensed over the last ``days`` days divided by ``days``."""
    since = timezone.now() - timedelta(days=days)
    dispensed = StockMovement.objects.filter(
        medication=medication,
        movement_type=MovementType.DISPENSED,
        created_at__gte=since,
    ).aggregate(total=Sum('quantity'))['total'] or 0
    return (Decimal(dispensed) / days).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _preferred_supplier(medication: Medication):
    item = (
        PurchaseOrderItem.objects
        .filter(medication=medication)
        .select_related('purchase_order__supplier')
        .order_by('-purchase_order__order_date', '-created_at')
        .first()
    )
    return item.purchase_order.supplier if item else None


def build_suggestion(medication: Medication) -> dict:
    """
    Work out quantity, priority and reason for one low-stock medication.

    target = max(threshold * 2, ceil(avg_daily * 30)); suggested is the
    gap to target, at least 1.
    """
    threshold = medication.low_stock_threshold
    avg_daily = average_daily_consumption(medication)
    target = max(threshold * 2, math.ceil(avg_daily * COVER_DAYS))
    suggested = max(1, target - medication.stock_level)

    days_of_cover = (
        Decimal(medication.stock_level) / avg_daily if avg_daily > 0 else None
    )

    if medication.stock_level == 0:
        priority, reason = SuggestionPriority.URGENT, SuggestionReason.OUT_OF_STOCK
    elif days_of_cover is not None and days_of_cover < HIGH_PRIORITY_COVER_DAYS:
        priority, reason = SuggestionPriority.HIGH, SuggestionReason.HIGH_CONSUMPTION
    elif medication.stock_level <= threshold / 2:
        priority, reason = SuggestionPriority.HIGH, SuggestionReason.LOW_STOCK
    else:
        priority, reason = SuggestionPriority.NORMAL, SuggestionReason.LOW_STOCK

    unit_cost = medication.average_cost or medication.cost_price
    return {
        'current_stock': medication.stock_level,
        'suggested_quantity': suggested,
        'average_consumption_daily': avg_daily,
        'cost_estimate': (suggested * unit_cost).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP),
        'priority_level': priority,
        'reason': reason,
    }


@transaction.atomic
def generate_reorder_suggestions() -> List[ReorderSuggestion]:
    """
    Create pending suggestions for low-stock medications.

    Medications that already have a pending or approved suggestion are
    skipped.

    Returns:
        Newly created suggestions
    """
    open_ids = set(
        ReorderSuggestion.objects
        .filter(status__in=[SuggestionStatus.PENDING, SuggestionStatus.APPROVED])
        .values_list('medication_id', flat=True)
    )

    created = []
    for medication in get_low_stock_medications():
        if medication.id in open_ids:
            continue
        suggestion = ReorderSuggestion.objects.create(
            medication=medication,
            supplier=_preferred_supplier(medication),
            **build_suggestion(medication),
        )
        created.append(suggestion)

    logger.info("Generated %d reorder suggestion(s)", len(created))
    return created


@transaction.atomic
def update_suggestion_status(*, suggestion_id, status: str) -> ReorderSuggestion:
    """
    Move a suggestion through pending -> approved -> ordered (or dismissed).

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    suggestion = ReorderSuggestion.objects.select_for_update().get(id=suggestion_id)
    allowed = ALLOWED_TRANSITIONS.get(suggestion.status, set())
    if status not in allowed:
        raise InvalidStatusTransitionError(
            f"Cannot change suggestion from {suggestion.status} to {status}"
        )
    suggestion.status = status
    suggestion.save(update_fields=['status', 'updated_at'])
    return suggestion
