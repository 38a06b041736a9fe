"""Purchase order receipt: stock movements, item updates and status in one transaction."""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from apps.inventory.models import MovementType
from apps.inventory.services import record_stock_movement
from apps.procurement.models import PurchaseOrder, POStatus
from .exceptions import InvalidReceiptError, InvalidPOStatusTransitionError
from .purchase_orders import get_purchase_order, log_po_audit, recalculate_totals

logger = logging.getLogger(__name__)

RECEIVABLE_STATUSES = (POStatus.ORDERED, POStatus.PARTIALLY_RECEIVED)


@transaction.atomic
def process_po_receipt(
    *,
    purchase_order_id,
    items: List[Dict],
    user=None,
    delivery_date: Optional[date] = None,
    tracking_number: str = '',
    shipping_cost: Optional[Decimal] = None,
    notes: str = ''
) -> PurchaseOrder:
    """
    Receive goods against an ordered purchase order.

    Each received line becomes a receipt stock movement carrying the
    batch number, expiry date and PO number. Any failure rolls back the
    whole receipt.

    Args:
        purchase_order_id: PO being received
        items: Dicts with item_id, quantity_received, batch_number,
            expiry_date and optional unit_cost
        user: Staff member receiving
        delivery_date: Defaults to today
        tracking_number: Carrier reference
        shipping_cost: Replaces the PO's shipping cost when given
        notes: Appended to the audit row

    Returns:
        Updated PurchaseOrder

    Raises:
        InvalidPOStatusTransitionError: If the PO is not ordered or
            partially received
        InvalidReceiptError: For unknown items, non-positive quantities
            or quantities above what is outstanding
    """
    purchase_order = get_purchase_order(purchase_order_id)
    if purchase_order.status not in RECEIVABLE_STATUSES:
        raise InvalidPOStatusTransitionError(
            f"Purchase order {purchase_order.po_number} is {purchase_order.status}; "
            "only ordered purchase orders can be received"
        )
    if not items:
        raise InvalidReceiptError("No items to receive")

    po_items = {str(item.id): item for item in purchase_order.items.select_for_update()}
    delivery_date = delivery_date or timezone.localdate()
    received = []

    for line in items:
        item = po_items.get(str(line.get('item_id')))
        if item is None:
            raise InvalidReceiptError(f"Item {line.get('item_id')} is not on {purchase_order.po_number}")

        quantity = int(line.get('quantity_received') or 0)
        if quantity <= 0:
            raise InvalidReceiptError(f"Received quantity for {item.item_name} must be greater than zero")
        if quantity > item.quantity_outstanding:
            raise InvalidReceiptError(
                f"Cannot receive {quantity} of {item.item_name}; "
                f"only {item.quantity_outstanding} outstanding"
            )

        unit_cost = line.get('unit_cost')
        unit_cost = Decimal(str(unit_cost)) if unit_cost is not None else item.unit_cost
        batch_number = line.get('batch_number') or ''
        expiry_date = line.get('expiry_date')

        if item.medication_id:
            record_stock_movement(
                medication_id=item.medication_id,
                movement_type=MovementType.RECEIPT,
                quantity=quantity,
                unit_cost=unit_cost,
                batch_number=batch_number,
                expiry_date=expiry_date,
                reference_number=purchase_order.po_number,
                reason=f"Received against {purchase_order.po_number}",
                purchase_order=purchase_order,
                created_by=user,
            )

        item.quantity_received += quantity
        item.received_unit_cost = unit_cost
        item.received_date = delivery_date
        if batch_number:
            item.batch_number = batch_number
        if expiry_date:
            item.expiry_date = expiry_date
        item.save()

        received.append({
            'item_id': str(item.id),
            'item_name': item.item_name,
            'quantity_received': quantity,
            'unit_cost': str(unit_cost),
            'batch_number': batch_number,
            'expiry_date': expiry_date.isoformat() if expiry_date else None,
        })

    previous_status = purchase_order.status
    fully_received = all(item.is_fully_received for item in po_items.values())
    purchase_order.status = POStatus.RECEIVED if fully_received else POStatus.PARTIALLY_RECEIVED
    purchase_order.delivery_date = delivery_date
    purchase_order.received_at = timezone.now()
    purchase_order.received_by = user
    if tracking_number:
        purchase_order.tracking_number = tracking_number
    if shipping_cost is not None:
        purchase_order.shipping_cost = Decimal(str(shipping_cost))
    purchase_order.save()
    recalculate_totals(purchase_order)

    log_po_audit(
        purchase_order=purchase_order,
        action='received',
        previous_status=previous_status,
        new_status=purchase_order.status,
        user=user,
        reason=notes,
        metadata={'received_items': received},
    )

    logger.info(
        "Received %d line(s) on %s, now %s",
        len(received),
        purchase_order.po_number,
        purchase_order.status,
    )
    return purchase_order
