"""
Purchase order service - numbering, totals, status workflow and audit.

Every state change writes a PurchaseOrderAudit row in the same
transaction as the change itself.
"""

import logging
import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.clinic.services import get_setting_value
from apps.inventory.models import Medication
from apps.procurement.models import (
    Supplier,
    SupplierStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderAudit,
    POStatus,
    PaymentStatus,
    ApprovalWorkflow,
)
from .exceptions import (
    SupplierNotFoundError,
    InactiveSupplierError,
    PurchaseOrderNotFoundError,
    InvalidPOStatusTransitionError,
    PurchaseOrderNotEditableError,
    EmptyPurchaseOrderError,
    ApprovalPermissionError,
    CancellationReasonRequiredError,
    ProcurementServiceError,
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

ALLOWED_TRANSITIONS = {
    POStatus.DRAFT: {
        POStatus.QUOTATION_REQUESTED,
        POStatus.PENDING_APPROVAL,
        POStatus.APPROVED,
        POStatus.CANCELLED,
    },
    POStatus.QUOTATION_REQUESTED: {POStatus.QUOTATION_RECEIVED, POStatus.CANCELLED},
    POStatus.QUOTATION_RECEIVED: {
        POStatus.PENDING_APPROVAL,
        POStatus.APPROVED,
        POStatus.CANCELLED,
    },
    POStatus.PENDING_APPROVAL: {POStatus.APPROVED, POStatus.DRAFT, POStatus.CANCELLED},
    POStatus.APPROVED: {POStatus.ORDERED, POStatus.CANCELLED},
    POStatus.ORDERED: {POStatus.PARTIALLY_RECEIVED, POStatus.RECEIVED, POStatus.CANCELLED},
    POStatus.PARTIALLY_RECEIVED: {POStatus.RECEIVED, POStatus.CLOSED},
    POStatus.RECEIVED: {POStatus.CLOSED},
    POStatus.CLOSED: set(),
    POStatus.CANCELLED: set(),
}

EDITABLE_STATUSES = (POStatus.DRAFT, POStatus.PENDING_APPROVAL)

EDITABLE_FIELDS = (
    'expected_delivery_date',
    'order_date',
    'shipping_cost',
    'payment_terms',
    'notes',
)


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def generate_po_number(today: Optional[date] = None) -> str:
    """Next ``PO-YYYYMMDD-####`` number for the day."""
    today = today or timezone.localdate()
    prefix = f"PO-{today.strftime('%Y%m%d')}-"
    return next_sequence_number(
        PurchaseOrder.objects.filter(po_number__startswith=prefix).values_list('po_number', flat=True),
        prefix
    )


def next_sequence_number(existing, prefix: str) -> str:
    pattern = re.compile(rf'^{re.escape(prefix)}(\d+)$')
    highest = 0
    for number in existing:
        match = pattern.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:04d}"


def get_tax_rate() -> Decimal:
    """Clinic tax rate in percent."""
    return Decimal(str(get_setting_value('payment', 'tax_rate', 0) or 0))


def recalculate_totals(purchase_order: PurchaseOrder, save: bool = True) -> PurchaseOrder:
    """
    subtotal = sum of item totals; tax = subtotal x tax_rate / 100;
    total = subtotal + tax + shipping.
    """
    subtotal = sum(
        (item.total_cost for item in purchase_order.items.all()),
        Decimal('0.00')
    )
    tax_amount = (subtotal * get_tax_rate() / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    purchase_order.subtotal = subtotal
    purchase_order.tax_amount = tax_amount
    purchase_order.total_amount = subtotal + tax_amount + (purchase_order.shipping_cost or Decimal('0.00'))
    if save:
        purchase_order.save(update_fields=['subtotal', 'tax_amount', 'total_amount', 'updated_at'])
    return purchase_order


def snapshot_purchase_order(purchase_order: PurchaseOrder) -> dict:
    """JSON-safe copy of the editable state, for audit previous/new data."""
    return {
        'status': purchase_order.status,
        'order_date': purchase_order.order_date.isoformat() if purchase_order.order_date else None,
        'expected_delivery_date': (
            purchase_order.expected_delivery_date.isoformat()
            if purchase_order.expected_delivery_date else None
        ),
        'shipping_cost': str(purchase_order.shipping_cost),
        'payment_terms': purchase_order.payment_terms,
        'notes': purchase_order.notes,
        'subtotal': str(purchase_order.subtotal),
        'tax_amount': str(purchase_order.tax_amount),
        'total_amount': str(purchase_order.total_amount),
        'items': [
            {
                'item_name': item.item_name,
                'medication_id': str(item.medication_id) if item.medication_id else None,
                'quantity_ordered': item.quantity_ordered,
                'unit_cost': str(item.unit_cost),
            }
            for item in purchase_order.items.all()
        ],
    }


def log_po_audit(
    *,
    purchase_order: PurchaseOrder,
    action: str,
    previous_status: str = '',
    new_status: str = '',
    user=None,
    reason: str = '',
    metadata: Optional[dict] = None,
    previous_data: Optional[dict] = None,
    new_data: Optional[dict] = None
) -> PurchaseOrderAudit:
    return PurchaseOrderAudit.objects.create(
        purchase_order=purchase_order,
        action=action,
        previous_status=previous_status or '',
        new_status=new_status or '',
        changed_by=user,
        change_reason=reason or '',
        metadata=metadata or {},
        previous_data=previous_data,
        new_data=new_data,
    )


def find_approval_workflow(amount: Decimal) -> Optional[ApprovalWorkflow]:
    """Active workflow with the lowest sequence whose range contains ``amount``."""
    for workflow in ApprovalWorkflow.objects.filter(is_active=True).order_by('approval_sequence', 'min_order_value'):
        if workflow.covers(amount):
            return workflow
    return None


def get_purchase_order(purchase_order_id, lock: bool = True) -> PurchaseOrder:
    queryset = PurchaseOrder.objects.select_related('supplier')
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(id=purchase_order_id)
    except PurchaseOrder.DoesNotExist:
        raise PurchaseOrderNotFoundError("Purchase order not found")


def _create_items(purchase_order: PurchaseOrder, items: List[Dict]) -> None:
    if not items:
        raise EmptyPurchaseOrderError("A purchase order needs at least one item")

    for item in items:
        medication = item.get('medication')
        medication_id = item.get('medication_id')
        if medication is None and medication_id:
            medication = Medication.objects.filter(id=medication_id).first()
            if medication is None:
                raise ProcurementServiceError(f"Medication {medication_id} not found")

        quantity = int(item['quantity_ordered'])
        if quantity <= 0:
            raise ProcurementServiceError("Item quantity must be greater than zero")
        unit_cost = Decimal(str(item['unit_cost']))
        item_name = item.get('item_name') or (medication.name if medication else '')
        if not item_name:
            raise ProcurementServiceError("Each item needs a medication or an item name")

        PurchaseOrderItem.objects.create(
            purchase_order=purchase_order,
            medication=medication,
            item_name=item_name,
            quantity_ordered=quantity,
            unit_cost=unit_cost,
            total_cost=(quantity * unit_cost).quantize(CENT, rounding=ROUND_HALF_UP),
            notes=item.get('notes', ''),
        )


@transaction.atomic
def create_purchase_order(
    *,
    supplier_id,
    items: List[Dict],
    order_date: Optional[date] = None,
    expected_delivery_date: Optional[date] = None,
    shipping_cost: Decimal = Decimal('0.00'),
    payment_terms: str = '',
    notes: str = '',
    requested_by=None,
    quotation=None,
    quotation_request=None,
    audit_reason: str = ''
) -> PurchaseOrder:
    """
    Create a purchase order and apply approval workflows.

    A PO whose total falls in an auto-approving workflow below its
    maximum is approved straight away; a PO matched by any other
    workflow waits in pending_approval; without a workflow it stays a
    draft.

    Args:
        supplier_id: Supplier to order from
        items: Dicts with medication_id (or medication), item_name,
            quantity_ordered, unit_cost, notes
        order_date: Defaults to today
        expected_delivery_date: Expected arrival
        shipping_cost: Added to the total
        payment_terms: Defaults to the supplier's terms
        notes: Free text
        requested_by: Staff member creating the order
        quotation: Source quotation, when converted
        quotation_request: Source quotation request
        audit_reason: Reason recorded on the creation audit row

    Raises:
        SupplierNotFoundError, InactiveSupplierError, EmptyPurchaseOrderError
    """
    try:
        supplier = Supplier.objects.get(id=supplier_id)
    except Supplier.DoesNotExist:
        raise SupplierNotFoundError("Supplier not found")
    if supplier.status != SupplierStatus.ACTIVE:
        raise InactiveSupplierError(f"Supplier {supplier.supplier_name} is inactive")

    purchase_order = PurchaseOrder.objects.create(
        po_number=generate_po_number(),
        supplier=supplier,
        order_date=order_date or timezone.localdate(),
        expected_delivery_date=expected_delivery_date,
        shipping_cost=Decimal(str(shipping_cost or 0)),
        payment_terms=payment_terms or supplier.payment_terms,
        notes=notes,
        requested_by=requested_by,
        quotation=quotation,
        quotation_request=quotation_request,
    )
    _create_items(purchase_order, items)
    recalculate_totals(purchase_order)

    log_po_audit(
        purchase_order=purchase_order,
        action='created',
        new_status=POStatus.DRAFT,
        user=requested_by,
        reason=audit_reason,
        new_data=snapshot_purchase_order(purchase_order),
    )

    workflow = find_approval_workflow(purchase_order.total_amount)
    if workflow is not None:
        auto_approve = (
            workflow.auto_approve_below_threshold and
            workflow.max_order_value is not None and
            purchase_order.total_amount < workflow.max_order_value
        )
        if auto_approve:
            _set_status(
                purchase_order,
                POStatus.APPROVED,
                user=requested_by,
                action='auto_approved',
                reason=f"Auto-approved by workflow {workflow.workflow_name}",
                metadata={'workflow_id': str(workflow.id)},
            )
        else:
            _set_status(
                purchase_order,
                POStatus.PENDING_APPROVAL,
                user=requested_by,
                action='submitted_for_approval',
                reason=f"Requires {workflow.required_role} approval ({workflow.workflow_name})",
                metadata={'workflow_id': str(workflow.id)},
            )

    logger.info(
        "Created %s for %s, total %s, status %s",
        purchase_order.po_number,
        supplier.supplier_name,
        purchase_order.total_amount,
        purchase_order.status,
    )
    return purchase_order


@transaction.atomic
def update_purchase_order(*, purchase_order_id, items: Optional[List[Dict]] = None, user=None, **fields) -> PurchaseOrder:
    """
    Edit a draft or pending-approval PO. Items are replaced when given.

    Raises:
        PurchaseOrderNotEditableError: For any other status
    """
    purchase_order = get_purchase_order(purchase_order_id)
    if purchase_order.status not in EDITABLE_STATUSES:
        raise PurchaseOrderNotEditableError(
            f"Purchase order {purchase_order.po_number} is {purchase_order.status} and cannot be edited"
        )

    previous_data = snapshot_purchase_order(purchase_order)

    for field in EDITABLE_FIELDS:
        if field in fields:
            setattr(purchase_order, field, fields[field])
    purchase_order.save()

    if items is not None:
        purchase_order.items.all().delete()
        _create_items(purchase_order, items)

    recalculate_totals(purchase_order)

    log_po_audit(
        purchase_order=purchase_order,
        action='updated',
        previous_status=purchase_order.status,
        new_status=purchase_order.status,
        user=user,
        previous_data=previous_data,
        new_data=snapshot_purchase_order(purchase_order),
    )
    return purchase_order


def _set_status(
    purchase_order: PurchaseOrder,
    new_status: str,
    *,
    user=None,
    action: str = 'status_changed',
    reason: str = '',
    metadata: Optional[dict] = None,
    extra_fields: Optional[dict] = None
) -> PurchaseOrder:
    previous_status = purchase_order.status
    if not can_transition(previous_status, new_status):
        raise InvalidPOStatusTransitionError(
            f"Cannot change purchase order from {previous_status} to {new_status}"
        )

    purchase_order.status = new_status
    update_fields = ['status', 'updated_at']
    for field, value in (extra_fields or {}).items():
        setattr(purchase_order, field, value)
        update_fields.append(field)
    purchase_order.save(update_fields=update_fields)

    log_po_audit(
        purchase_order=purchase_order,
        action=action,
        previous_status=previous_status,
        new_status=new_status,
        user=user,
        reason=reason,
        metadata=metadata,
    )
    return purchase_order


@transaction.atomic
def change_po_status(
    *,
    purchase_order_id,
    new_status: str,
    user=None,
    reason: str = '',
    metadata: Optional[dict] = None
) -> PurchaseOrder:
    """
    Move a PO along the transition table and audit it.

    Raises:
        InvalidPOStatusTransitionError: If the transition is not allowed
    """
    purchase_order = get_purchase_order(purchase_order_id)
    return _set_status(purchase_order, new_status, user=user, reason=reason, metadata=metadata)


@transaction.atomic
def submit_for_approval(*, purchase_order_id, user=None) -> PurchaseOrder:
    purchase_order = get_purchase_order(purchase_order_id)
    return _set_status(purchase_order, POStatus.PENDING_APPROVAL, user=user, action='submitted_for_approval')


def user_can_approve(user, workflow: Optional[ApprovalWorkflow]) -> bool:
    """Admins always qualify; otherwise the role must match the workflow."""
    if user is None:
        return False
    if getattr(user, 'is_clinic_admin', False):
        return True
    if workflow is None:
        return True
    return user.role == workflow.required_role


@transaction.atomic
def approve_purchase_order(*, purchase_order_id, user, notes: str = '') -> PurchaseOrder:
    """
    Approve a PO.

    Raises:
        ApprovalPermissionError: If the user's role doesn't satisfy the
            workflow that covers the PO total
    """
    purchase_order = get_purchase_order(purchase_order_id)
    workflow = find_approval_workflow(purchase_order.total_amount)
    if not user_can_approve(user, workflow):
        required = workflow.required_role if workflow else 'an authorized'
        raise ApprovalPermissionError(
            f"Purchase orders of {purchase_order.total_amount} require {required} approval"
        )

    return _set_status(
        purchase_order,
        POStatus.APPROVED,
        user=user,
        action='approved',
        reason=notes,
        metadata={'workflow_id': str(workflow.id)} if workflow else None,
        extra_fields={'approved_by': user, 'approved_at': timezone.now()},
    )


@transaction.atomic
def cancel_purchase_order(*, purchase_order_id, user=None, reason: str = '') -> PurchaseOrder:
    """
    Raises:
        CancellationReasonRequiredError: If no reason is given
    """
    if not (reason or '').strip():
        raise CancellationReasonRequiredError("A cancellation reason is required")
    purchase_order = get_purchase_order(purchase_order_id)
    return _set_status(purchase_order, POStatus.CANCELLED, user=user, action='cancelled', reason=reason)


@transaction.atomic
def mark_as_ordered(*, purchase_order_id, user=None, tracking_number: str = '') -> PurchaseOrder:
    purchase_order = get_purchase_order(purchase_order_id)
    extra = {'tracking_number': tracking_number} if tracking_number else None
    return _set_status(purchase_order, POStatus.ORDERED, user=user, action='ordered', extra_fields=extra)


@transaction.atomic
def update_payment_status(*, purchase_order_id, payment_status: str, user=None) -> PurchaseOrder:
    if payment_status not in PaymentStatus.values:
        raise ProcurementServiceError(f"Unknown payment status: {payment_status}")

    purchase_order = get_purchase_order(purchase_order_id)
    previous = purchase_order.payment_status
    purchase_order.payment_status = payment_status
    purchase_order.save(update_fields=['payment_status', 'updated_at'])

    log_po_audit(
        purchase_order=purchase_order,
        action='payment_updated',
        previous_status=purchase_order.status,
        new_status=purchase_order.status,
        user=user,
        metadata={'previous_payment_status': previous, 'payment_status': payment_status},
    )
    return purchase_order


def get_audit_trail(
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    purchase_order_id=None
) -> QuerySet:
    """Audit rows, newest first, filtered by PO, status, dates and free text."""
    queryset = PurchaseOrderAudit.objects.select_related(
        'purchase_order__supplier',
        'changed_by'
    )
    if purchase_order_id:
        queryset = queryset.filter(purchase_order_id=purchase_order_id)
    if status:
        queryset = queryset.filter(new_status=status)
    if date_from:
        queryset = queryset.filter(changed_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(changed_at__date__lte=date_to)
    if search:
        queryset = queryset.filter(
            Q(purchase_order__po_number__icontains=search) |
            Q(purchase_order__supplier__supplier_name__icontains=search) |
            Q(change_reason__icontains=search)
        )
    return queryset.order_by('-changed_at')
