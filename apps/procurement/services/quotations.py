"""Quotation requests, supplier quotations, comparison and conversion to purchase orders."""

import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from apps.inventory.models import Medication
from apps.procurement.models import (
    Supplier,
    QuotationRequest,
    QuotationRequestItem,
    QuotationRequestStatus,
    Quotation,
    QuotationItem,
    QuotationStatus,
    CommunicationType,
    CommunicationDirection,
    CommunicationStatus,
)
from .exceptions import (
    SupplierNotFoundError,
    QuotationNotFoundError,
    QuotationNotAcceptableError,
    AlreadyConvertedError,
    ProcurementServiceError,
)
from .purchase_orders import next_sequence_number, create_purchase_order
from .communications import log_communication

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
OTHER_QUOTATION_REJECTED = 'Another quotation was selected'


def generate_request_number(today: Optional[date] = None) -> str:
    """Next ``QR-YYYYMMDD-####`` number for the day."""
    today = today or timezone.localdate()
    prefix = f"QR-{today.strftime('%Y%m%d')}-"
    return next_sequence_number(
        QuotationRequest.objects.filter(request_number__startswith=prefix).values_list('request_number', flat=True),
        prefix
    )


def _medication(medication_id) -> Optional[Medication]:
    if not medication_id:
        return None
    medication = Medication.objects.filter(id=medication_id).first()
    if medication is None:
        raise ProcurementServiceError(f"Medication {medication_id} not found")
    return medication


def _supplier(supplier_id) -> Supplier:
    try:
        return Supplier.objects.get(id=supplier_id)
    except Supplier.DoesNotExist:
        raise SupplierNotFoundError("Supplier not found")


@transaction.atomic
def create_quotation_request(
    *,
    title: str,
    items: List[Dict],
    description: str = '',
    supplier_id=None,
    required_by_date: Optional[date] = None,
    priority: str = 'normal',
    requested_by=None
) -> QuotationRequest:
    """
    Create a request for quotation.

    Args:
        items: Dicts with medication_id, item_description,
            requested_quantity, unit_of_measure, specifications
    """
    if not items:
        raise ProcurementServiceError("A quotation request needs at least one item")

    request = QuotationRequest.objects.create(
        request_number=generate_request_number(),
        title=title,
        description=description,
        supplier=_supplier(supplier_id) if supplier_id else None,
        requested_by=requested_by,
        request_date=timezone.localdate(),
        required_by_date=required_by_date,
        priority=priority,
    )
    for item in items:
        medication = _medication(item.get('medication_id'))
        QuotationRequestItem.objects.create(
            quotation_request=request,
            medication=medication,
            item_description=item.get('item_description') or (medication.name if medication else ''),
            requested_quantity=item['requested_quantity'],
            unit_of_measure=item.get('unit_of_measure', ''),
            specifications=item.get('specifications', ''),
        )

    logger.info("Created quotation request %s", request.request_number)
    return request


@transaction.atomic
def send_quotation_request(*, request_id, user=None) -> QuotationRequest:
    """Mark a request as sent and log the outbound email to its supplier."""
    try:
        request = QuotationRequest.objects.select_for_update().select_related('supplier').get(id=request_id)
    except QuotationRequest.DoesNotExist:
        raise QuotationNotFoundError("Quotation request not found")

    if request.status not in (QuotationRequestStatus.PENDING, QuotationRequestStatus.SENT):
        raise ProcurementServiceError(f"Quotation request is {request.status} and cannot be sent")

    request.status = QuotationRequestStatus.SENT
    request.save(update_fields=['status', 'updated_at'])

    if request.supplier is not None:
        lines = [
            f"- {item.item_description}: {item.requested_quantity} {item.unit_of_measure}".rstrip()
            for item in request.items.all()
        ]
        log_communication(
            supplier=request.supplier,
            communication_type=CommunicationType.EMAIL,
            direction=CommunicationDirection.OUTBOUND,
            subject=f"Request for quotation {request.request_number}: {request.title}",
            content="\n".join([request.description] + lines).strip(),
            recipient_email=request.supplier.email,
            status=CommunicationStatus.SENT,
            metadata={'quotation_request_id': str(request.id)},
            created_by=user,
        )
    return request


@transaction.atomic
def record_quotation(
    *,
    supplier_id,
    items: List[Dict],
    quotation_number: str,
    quotation_request_id=None,
    quotation_date: Optional[date] = None,
    valid_until: Optional[date] = None,
    currency: str = 'MYR',
    payment_terms: str = '',
    delivery_terms: str = '',
    supplier_reference: str = '',
    comparison_notes: str = ''
) -> Quotation:
    """
    Record a supplier's quotation. The total is the sum of item totals
    and the linked request moves to ``received``.

    Args:
        items: Dicts with description, medication_id, quantity,
            unit_price, unit_of_measure, brand, specifications,
            delivery_time_days, minimum_order_quantity
    """
    if not items:
        raise ProcurementServiceError("A quotation needs at least one item")

    request = None
    if quotation_request_id:
        try:
            request = QuotationRequest.objects.select_for_update().get(id=quotation_request_id)
        except QuotationRequest.DoesNotExist:
            raise QuotationNotFoundError("Quotation request not found")

    quotation = Quotation.objects.create(
        quotation_number=quotation_number,
        quotation_request=request,
        supplier=_supplier(supplier_id),
        quotation_date=quotation_date or timezone.localdate(),
        valid_until=valid_until,
        currency=currency,
        payment_terms=payment_terms,
        delivery_terms=delivery_terms,
        supplier_reference=supplier_reference,
        comparison_notes=comparison_notes,
    )

    total = Decimal('0.00')
    for item in items:
        quantity = int(item['quantity'])
        unit_price = Decimal(str(item['unit_price']))
        total_price = (quantity * unit_price).quantize(CENT, rounding=ROUND_HALF_UP)
        medication = _medication(item.get('medication_id'))
        QuotationItem.objects.create(
            quotation=quotation,
            medication=medication,
            description=item.get('description') or (medication.name if medication else ''),
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            unit_of_measure=item.get('unit_of_measure', ''),
            brand=item.get('brand', ''),
            specifications=item.get('specifications', ''),
            delivery_time_days=item.get('delivery_time_days'),
            minimum_order_quantity=item.get('minimum_order_quantity'),
        )
        total += total_price

    quotation.total_amount = total
    quotation.save(update_fields=['total_amount', 'updated_at'])

    if request is not None and request.status in (QuotationRequestStatus.PENDING, QuotationRequestStatus.SENT):
        request.status = QuotationRequestStatus.RECEIVED
        request.save(update_fields=['status', 'updated_at'])

    logger.info("Recorded quotation %s, total %s", quotation.quotation_number, total)
    return quotation


def compare_quotations(*, request_id) -> dict:
    """
    Side-by-side unit prices of every non-rejected quotation on a request.

    Returns:
        dict with ``items`` (one per requested description, each listing
        quotation prices and best_price) and ``lowest_total`` (the
        cheapest quotation, or None)
    """
    try:
        request = QuotationRequest.objects.prefetch_related('items').get(id=request_id)
    except QuotationRequest.DoesNotExist:
        raise QuotationNotFoundError("Quotation request not found")

    quotations = list(
        request.quotations
        .exclude(status=QuotationStatus.REJECTED)
        .select_related('supplier')
        .prefetch_related('items')
    )

    comparison = []
    for requested in request.items.all():
        key = requested.item_description.lower()
        offers = []
        for quotation in quotations:
            match = next(
                (
                    item for item in quotation.items.all()
                    if (requested.medication_id and item.medication_id == requested.medication_id) or
                    item.description.lower() == key
                ),
                None
            )
            if match is None:
                continue
            offers.append({
                'quotation_id': quotation.id,
                'supplier_name': quotation.supplier.supplier_name,
                'unit_price': match.unit_price,
                'total_price': match.total_price,
                'delivery_time_days': match.delivery_time_days,
            })
        comparison.append({
            'item_description': requested.item_description,
            'requested_quantity': requested.requested_quantity,
            'offers': offers,
            'best_price': min((o['unit_price'] for o in offers), default=None),
        })

    lowest = min(quotations, key=lambda q: q.total_amount, default=None)
    return {
        'request_id': request.id,
        'request_number': request.request_number,
        'quotation_count': len(quotations),
        'items': comparison,
        'lowest_total': {
            'quotation_id': lowest.id,
            'supplier_name': lowest.supplier.supplier_name,
            'total_amount': lowest.total_amount,
        } if lowest else None,
    }


def _get_quotation(quotation_id) -> Quotation:
    try:
        return Quotation.objects.select_for_update().get(id=quotation_id)
    except Quotation.DoesNotExist:
        raise QuotationNotFoundError("Quotation not found")


@transaction.atomic
def accept_quotation(*, quotation_id, user=None, today: Optional[date] = None) -> Quotation:
    """
    Accept a quotation and reject its competitors on the same request.

    Raises:
        QuotationNotAcceptableError: If the quotation is expired, rejected
            or past valid_until
    """
    today = today or timezone.localdate()
    quotation = _get_quotation(quotation_id)

    if quotation.status in (QuotationStatus.EXPIRED, QuotationStatus.REJECTED):
        raise QuotationNotAcceptableError(f"Quotation {quotation.quotation_number} is {quotation.status}")
    if quotation.valid_until and quotation.valid_until < today:
        raise QuotationNotAcceptableError(
            f"Quotation {quotation.quotation_number} expired on {quotation.valid_until}"
        )
    if quotation.status == QuotationStatus.ACCEPTED:
        return quotation

    quotation.status = QuotationStatus.ACCEPTED
    quotation.accepted_at = timezone.now()
    quotation.accepted_by = user
    quotation.save(update_fields=['status', 'accepted_at', 'accepted_by', 'updated_at'])

    if quotation.quotation_request_id:
        (
            Quotation.objects
            .filter(quotation_request_id=quotation.quotation_request_id)
            .exclude(id=quotation.id)
            .exclude(status=QuotationStatus.REJECTED)
            .update(status=QuotationStatus.REJECTED, rejected_reason=OTHER_QUOTATION_REJECTED)
        )

    logger.info("Accepted quotation %s", quotation.quotation_number)
    return quotation


@transaction.atomic
def reject_quotation(*, quotation_id, reason: str = '') -> Quotation:
    quotation = _get_quotation(quotation_id)
    if quotation.status == QuotationStatus.ACCEPTED and quotation.purchase_orders.exists():
        raise AlreadyConvertedError("Quotation has already been converted to a purchase order")
    quotation.status = QuotationStatus.REJECTED
    quotation.rejected_reason = reason
    quotation.save(update_fields=['status', 'rejected_reason', 'updated_at'])
    return quotation


@transaction.atomic
def expire_quotations(*, today: Optional[date] = None) -> int:
    """Mark quotations past valid_until as expired. Returns how many changed."""
    today = today or timezone.localdate()
    count = (
        Quotation.objects
        .filter(valid_until__lt=today, status__in=[QuotationStatus.RECEIVED, QuotationStatus.UNDER_REVIEW])
        .update(status=QuotationStatus.EXPIRED)
    )
    if count:
        logger.info("Expired %d quotation(s)", count)
    return count


@transaction.atomic
def convert_quotation_to_po(*, quotation_id, user=None):
    """
    Turn a quotation into a purchase order.

    The quotation is accepted first when needed. The PO gets one item per
    quotation item, the quotation's payment terms and an expected
    delivery of today + the longest item delivery time.

    Raises:
        AlreadyConvertedError: If a PO already references the quotation
        QuotationNotAcceptableError: If the quotation cannot be accepted
    """
    quotation = _get_quotation(quotation_id)
    if quotation.purchase_orders.exists():
        raise AlreadyConvertedError(
            f"Quotation {quotation.quotation_number} has already been converted to a purchase order"
        )

    if quotation.status != QuotationStatus.ACCEPTED:
        quotation = accept_quotation(quotation_id=quotation.id, user=user)

    quotation_items = list(quotation.items.all())
    lead_times = [i.delivery_time_days for i in quotation_items if i.delivery_time_days is not None]
    expected = timezone.localdate() + timedelta(days=max(lead_times)) if lead_times else None

    purchase_order = create_purchase_order(
        supplier_id=quotation.supplier_id,
        items=[
            {
                'medication': item.medication,
                'item_name': item.description,
                'quantity_ordered': item.quantity,
                'unit_cost': item.unit_price,
                'notes': item.specifications,
            }
            for item in quotation_items
        ],
        expected_delivery_date=expected,
        payment_terms=quotation.payment_terms,
        notes=f"Created from quotation {quotation.quotation_number}",
        requested_by=user,
        quotation=quotation,
        quotation_request=quotation.quotation_request,
        audit_reason=f"Converted from quotation {quotation.quotation_number}",
    )

    logger.info("Converted quotation %s to %s", quotation.quotation_number, purchase_order.po_number)
    return purchase_order
