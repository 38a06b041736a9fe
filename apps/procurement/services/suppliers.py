"""Supplier management - codes, duplicate detection and performance."""

import logging
import re
from decimal import Decimal
from typing import List, Optional, Tuple

from django.db import transaction
from django.db.models import Sum, Count
from fuzzywuzzy import fuzz

from apps.procurement.models import Supplier, SupplierStatus, PurchaseOrder, POStatus
from .exceptions import SupplierNotFoundError, DuplicateSupplierError

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 85
CODE_PATTERN = re.compile(r'^SUP-(\d+)$')

DELIVERED_STATUSES = (POStatus.PARTIALLY_RECEIVED, POStatus.RECEIVED, POStatus.CLOSED)


def generate_supplier_code() -> str:
    """Next free ``SUP-####`` code."""
    highest = 0
    for code in Supplier.objects.filter(supplier_code__startswith='SUP-').values_list('supplier_code', flat=True):
        match = CODE_PATTERN.match(code)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"SUP-{highest + 1:04d}"


def find_similar_suppliers(
    *,
    name: str,
    threshold: int = SIMILARITY_THRESHOLD,
    exclude_id=None
) -> List[Tuple[Supplier, int]]:
    """Suppliers whose name is a fuzzy match for ``name``, best first."""
    target = name.lower().strip()
    candidates = Supplier.objects.all()
    if exclude_id:
        candidates = candidates.exclude(id=exclude_id)

    matches = []
    for supplier in candidates:
        score = fuzz.token_sort_ratio(target, supplier.supplier_name.lower())
        if score >= threshold:
            matches.append((supplier, score))
    matches.sort(key=lambda m: m[1], reverse=True)
    return matches[:10]


@transaction.atomic
def create_supplier(*, supplier_name: str, supplier_code: str = '', created_by=None, **fields) -> Supplier:
    """
    Create a supplier, generating a ``SUP-####`` code when none is given.

    Raises:
        DuplicateSupplierError: If the code is already taken
    """
    code = (supplier_code or '').strip().upper() or generate_supplier_code()
    if Supplier.objects.filter(supplier_code__iexact=code).exists():
        raise DuplicateSupplierError(f"Supplier code {code} already exists")

    supplier = Supplier.objects.create(
        supplier_name=supplier_name,
        supplier_code=code,
        created_by=created_by,
        **fields
    )
    logger.info("Created supplier %s (%s)", supplier.supplier_name, supplier.supplier_code)
    return supplier


@transaction.atomic
def update_supplier(*, supplier_id, **fields) -> Supplier:
    try:
        supplier = Supplier.objects.select_for_update().get(id=supplier_id)
    except Supplier.DoesNotExist:
        raise SupplierNotFoundError("Supplier not found")

    code = fields.get('supplier_code')
    if code is not None:
        code = code.strip().upper()
        if not code:
            fields.pop('supplier_code')
        elif Supplier.objects.filter(supplier_code__iexact=code).exclude(id=supplier.id).exists():
            raise DuplicateSupplierError(f"Supplier code {code} already exists")
        else:
            fields['supplier_code'] = code

    for field, value in fields.items():
        setattr(supplier, field, value)
    supplier.save()
    return supplier


@transaction.atomic
def deactivate_supplier(*, supplier_id) -> Supplier:
    try:
        supplier = Supplier.objects.get(id=supplier_id)
    except Supplier.DoesNotExist:
        raise SupplierNotFoundError("Supplier not found")
    supplier.status = SupplierStatus.INACTIVE
    supplier.save(update_fields=['status', 'updated_at'])
    logger.info("Deactivated supplier %s", supplier.supplier_code)
    return supplier


def get_supplier_performance(*, supplier_id) -> dict:
    """
    Order statistics for a supplier.

    Returns:
        dict with order_count and total_spend (cancelled orders excluded),
        on_time_delivery_rate (percent of delivered orders that arrived
        by the expected date, None when nothing was delivered with an
        expected date) and average_lead_days (order to delivery)
    """
    orders = PurchaseOrder.objects.filter(supplier_id=supplier_id).exclude(status=POStatus.CANCELLED)
    totals = orders.aggregate(order_count=Count('id'), total_spend=Sum('total_amount'))

    delivered = list(
        orders.filter(status__in=DELIVERED_STATUSES, delivery_date__isnull=False)
        .values('order_date', 'expected_delivery_date', 'delivery_date')
    )
    with_expected = [o for o in delivered if o['expected_delivery_date']]
    on_time = sum(1 for o in with_expected if o['delivery_date'] <= o['expected_delivery_date'])
    lead_days = [(o['delivery_date'] - o['order_date']).days for o in delivered]

    return {
        'supplier_id': supplier_id,
        'order_count': totals['order_count'],
        'total_spend': totals['total_spend'] or Decimal('0.00'),
        'delivered_count': len(delivered),
        'on_time_delivery_rate': (
            round(on_time / len(with_expected) * 100, 1) if with_expected else None
        ),
        'average_lead_days': (
            round(sum(lead_days) / len(lead_days), 1) if lead_days else None
        ),
    }
