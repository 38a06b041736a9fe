"""Price tier and medical service pricing services."""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional
from uuid import UUID

from django.db import transaction, IntegrityError

from apps.clinic.models import PriceTier, Panel, MedicalService, ServicePricing
from .exceptions import (
    PriceTierNotFoundError,
    DuplicateTierError,
    TierInUseError,
)

logger = logging.getLogger(__name__)


def _requires_verification(payment_methods: Iterable[str], panels) -> bool:
    return 'panel' in (payment_methods or []) or bool(panels)


@transaction.atomic
def create_price_tier(
    *,
    tier_name: str,
    description: str = '',
    tier_type: str = 'standard',
    payment_methods: Optional[list] = None,
    panel_ids: Optional[list[UUID]] = None,
    requires_verification: bool = False,
    coverage_rules: Optional[dict] = None,
    eligibility_rules: Optional[dict] = None,
) -> PriceTier:
    """
    Create a price tier.

    ``requires_verification`` is forced on when the tier accepts panel
    payment or has panels attached.

    Raises:
        DuplicateTierError: If the tier name is taken
    """
    if PriceTier.objects.filter(tier_name__iexact=tier_name).exists():
        raise DuplicateTierError(f"Price tier '{tier_name}' already exists")

    panels = list(Panel.objects.filter(id__in=panel_ids or []))
    payment_methods = payment_methods or []

    try:
        tier = PriceTier.objects.create(
            tier_name=tier_name,
            description=description,
            tier_type=tier_type,
            payment_methods=payment_methods,
            requires_verification=(
                requires_verification or _requires_verification(payment_methods, panels)
            ),
            coverage_rules=coverage_rules or {},
            eligibility_rules=eligibility_rules or {},
        )
    except IntegrityError:
        raise DuplicateTierError(f"Price tier '{tier_name}' already exists")

    tier.panels.set(panels)
    logger.info("Created price tier %s", tier.tier_name)
    return tier


@transaction.atomic
def update_price_tier(*, tier: PriceTier, **fields) -> PriceTier:
    """Update a tier; ``panel_ids`` replaces the panel set when given."""
    tier_name = fields.get('tier_name')
    if tier_name and PriceTier.objects.filter(
        tier_name__iexact=tier_name
    ).exclude(id=tier.id).exists():
        raise DuplicateTierError(f"Price tier '{tier_name}' already exists")

    panel_ids = fields.pop('panel_ids', None)
    for field, value in fields.items():
        setattr(tier, field, value)

    if panel_ids is not None:
        tier.panels.set(Panel.objects.filter(id__in=panel_ids))

    if _requires_verification(tier.payment_methods, tier.panels.exists()):
        tier.requires_verification = True
    tier.save()
    return tier


@transaction.atomic
def delete_price_tier(*, tier: PriceTier) -> None:
    """
    Delete a tier that no medication or service price references.

    Raises:
        TierInUseError: If pricing rows still point at the tier
    """
    in_use = tier.service_prices.exists() or tier.medication_prices.exists()
    if in_use:
        raise TierInUseError(
            f"Price tier '{tier.tier_name}' is used by medication or service pricing"
        )
    tier.delete()


def _get_tiers(tier_ids: Iterable) -> Dict[str, PriceTier]:
    tiers = {str(t.id): t for t in PriceTier.objects.filter(id__in=list(tier_ids))}
    missing = [str(t) for t in tier_ids if str(t) not in tiers]
    if missing:
        raise PriceTierNotFoundError(f"Price tier(s) not found: {', '.join(missing)}")
    return tiers


@transaction.atomic
def set_service_pricing(*, service: MedicalService, prices: Dict) -> list[ServicePricing]:
    """
    Upsert per-tier prices of a medical service.

    Args:
        service: The service to price
        prices: Mapping of tier id to price

    Returns:
        The service's pricing rows after the update
    """
    tiers = _get_tiers(prices.keys())
    for tier_id, price in prices.items():
        ServicePricing.objects.update_or_create(
            service=service,
            tier=tiers[str(tier_id)],
            defaults={'price': Decimal(str(price))},
        )
    return list(service.tier_prices.select_related('tier'))


def resolve_price(item, tier: Optional[PriceTier]) -> Decimal:
    """
    Price of a medication or service under ``tier``.

    Falls back to the item's base price, which is ``price`` for services
    and ``cost_price`` for medications without tier pricing.
    """
    base = getattr(item, 'price', None)
    if base is None:
        base = item.cost_price
    if tier is None:
        return base

    for row in item.tier_prices.all():
        if row.tier_id == tier.id:
            return row.price
    return base
