"""Medication management service - CRUD, tier pricing and duplicate detection."""

import logging
import re
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.db import transaction
from fuzzywuzzy import fuzz

from apps.clinic.models import PriceTier
from apps.inventory.models import Medication, MedicationPricing, MovementType
from .exceptions import NoPriceTiersError, MedicationNotFoundError, InventoryServiceError
from .stock_management import record_stock_movement

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 85


def normalize_name(text: str) -> str:
    """Lowercase, collapse whitespace and strip punctuation."""
    text = (text or '').lower().strip()
    text = re.sub(r'\s+', ' ', text)
    return re.sub(r'[^\w\s-]', '', text)


def find_similar_medications(
    *,
    name: str,
    threshold: int = SIMILARITY_THRESHOLD,
    exclude_id=None
) -> List[Tuple[Medication, int]]:
    """
    Find medications whose name is close to ``name``.

    Args:
        name: Candidate medication name
        threshold: Minimum fuzzy similarity (0-100)
        exclude_id: Medication to leave out (when editing)

    Returns:
        List of (medication, score), best match first, at most 10
    """
    target = normalize_name(name)
    candidates = Medication.objects.filter(is_active=True)
    if exclude_id:
        candidates = candidates.exclude(id=exclude_id)

    matches = []
    for medication in candidates:
        score = fuzz.ratio(target, normalize_name(medication.name))
        if score >= threshold:
            matches.append((medication, score))

    matches.sort(key=lambda m: m[1], reverse=True)
    return matches[:10]


@transaction.atomic
def set_medication_pricing(*, medication: Medication, prices: Dict) -> List[MedicationPricing]:
    """
    Upsert per-tier selling prices.

    Args:
        medication: Medication to price
        prices: Mapping of tier id to price

    Raises:
        InventoryServiceError: If a tier id is unknown
    """
    tiers = {str(t.id): t for t in PriceTier.objects.filter(id__in=list(prices.keys()))}
    missing = [str(tier_id) for tier_id in prices if str(tier_id) not in tiers]
    if missing:
        raise InventoryServiceError(f"Price tier(s) not found: {', '.join(missing)}")

    for tier_id, price in prices.items():
        MedicationPricing.objects.update_or_create(
            medication=medication,
            tier=tiers[str(tier_id)],
            defaults={'price': Decimal(str(price))},
        )
    return list(medication.tier_prices.select_related('tier'))


@transaction.atomic
def create_medication(
    *,
    name: str,
    generic_name: str = '',
    brand_name: str = '',
    category: str = '',
    unit_of_measure: str = 'unit',
    strength_options: Optional[list] = None,
    dosage_forms: Optional[list] = None,
    remarks: str = '',
    cost_price: Decimal = Decimal('0.00'),
    reorder_level: Optional[int] = None,
    pricing: Optional[Dict] = None,
    opening_stock: int = 0,
    batch_number: str = '',
    expiry_date=None,
    created_by=None
) -> Medication:
    """
    Create a medication with optional tier pricing and opening stock.

    Opening stock is recorded as a receipt so the movement history
    explains the initial level.

    Raises:
        NoPriceTiersError: If no price tier exists yet
    """
    if not PriceTier.objects.exists():
        raise NoPriceTiersError("Create price tiers first")

    medication = Medication.objects.create(
        name=name,
        generic_name=generic_name,
        brand_name=brand_name,
        category=category,
        unit_of_measure=unit_of_measure,
        strength_options=strength_options or [],
        dosage_forms=dosage_forms or [],
        remarks=remarks,
        cost_price=cost_price,
        reorder_level=reorder_level,
    )

    if pricing:
        set_medication_pricing(medication=medication, prices=pricing)

    if opening_stock:
        record_stock_movement(
            medication_id=medication.id,
            movement_type=MovementType.RECEIPT,
            quantity=opening_stock,
            unit_cost=cost_price,
            batch_number=batch_number,
            expiry_date=expiry_date,
            reason='Opening stock',
            created_by=created_by,
        )
        medication.refresh_from_db()

    logger.info("Created medication %s", medication.name)
    return medication


@transaction.atomic
def update_medication(*, medication_id, pricing: Optional[Dict] = None, **fields) -> Medication:
    """
    Update descriptive fields and pricing.

    ``stock_level`` and ``average_cost`` are owned by stock movements and
    cannot be set here.
    """
    try:
        medication = Medication.objects.select_for_update().get(id=medication_id)
    except Medication.DoesNotExist:
        raise MedicationNotFoundError("Medication not found")

    fields.pop('stock_level', None)
    fields.pop('average_cost', None)
    for field, value in fields.items():
        setattr(medication, field, value)
    medication.save()

    if pricing is not None:
        set_medication_pricing(medication=medication, prices=pricing)
    return medication


@transaction.atomic
def deactivate_medication(*, medication_id) -> Medication:
    """Hide a medication from stock lists while keeping its history."""
    try:
        medication = Medication.objects.get(id=medication_id)
    except Medication.DoesNotExist:
        raise MedicationNotFoundError("Medication not found")
    medication.is_active = False
    medication.save(update_fields=['is_active', 'updated_at'])
    return medication
