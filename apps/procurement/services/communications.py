"""Supplier communication log, templates and outbound email."""

import logging
import re
from typing import Dict, Optional

from django.conf import settings
from django.core.mail import send_mail
from django.db.models import QuerySet

from apps.procurement.models import (
    Supplier,
    SupplierCommunication,
    CommunicationTemplate,
    CommunicationType,
    CommunicationDirection,
    CommunicationStatus,
)
from .exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

VARIABLE_PATTERN = re.compile(r'\{\{\s*(\w+)\s*\}\}')


def process_template(text: str, variables: Optional[Dict] = None) -> str:
    """Replace ``{{key}}`` placeholders; unknown keys are left as they are."""
    variables = variables or {}

    def replace(match):
        key = match.group(1)
        if key in variables and variables[key] is not None:
            return str(variables[key])
        return match.group(0)

    return VARIABLE_PATTERN.sub(replace, text or '')


def template_variables(text: str) -> list:
    """Placeholder names used in ``text``, in order of first use."""
    seen = []
    for name in VARIABLE_PATTERN.findall(text or ''):
        if name not in seen:
            seen.append(name)
    return seen


def log_communication(
    *,
    supplier: Supplier,
    communication_type: str,
    direction: str,
    subject: str = '',
    content: str = '',
    recipient_email: str = '',
    sender_email: str = '',
    status: str = CommunicationStatus.DRAFT,
    purchase_order=None,
    quotation=None,
    attachments: Optional[list] = None,
    metadata: Optional[dict] = None,
    created_by=None
) -> SupplierCommunication:
    return SupplierCommunication.objects.create(
        supplier=supplier,
        purchase_order=purchase_order,
        quotation=quotation,
        communication_type=communication_type,
        direction=direction,
        subject=subject,
        content=content,
        recipient_email=recipient_email or '',
        sender_email=sender_email or '',
        status=status,
        attachments=attachments or [],
        metadata=metadata or {},
        created_by=created_by,
    )


def send_supplier_email(
    *,
    supplier: Supplier,
    subject: str = '',
    content: str = '',
    user=None,
    purchase_order=None,
    quotation=None,
    template: Optional[CommunicationTemplate] = None,
    variables: Optional[Dict] = None
) -> SupplierCommunication:
    """
    Email a supplier through Django's mail backend and log the attempt.

    When a template is given its subject and content are rendered with
    ``variables`` (supplier_name, po_number and quotation_number are
    filled in automatically). Delivery failures are logged as ``failed``
    communications with the error in metadata rather than raised.

    Raises:
        EmailDeliveryError: If the supplier has no email address
    """
    if not supplier.email:
        raise EmailDeliveryError(f"Supplier {supplier.supplier_name} has no email address")

    context = {
        'supplier_name': supplier.supplier_name,
        'contact_person': supplier.contact_person,
        'po_number': purchase_order.po_number if purchase_order else None,
        'quotation_number': quotation.quotation_number if quotation else None,
    }
    context.update(variables or {})

    if template is not None:
        subject = template.subject_template
        content = template.content_template
    subject = process_template(subject, context)
    content = process_template(content, context)

    sender = settings.DEFAULT_FROM_EMAIL
    metadata = {'template_id': str(template.id)} if template else {}
    try:
        send_mail(subject, content, sender, [supplier.email], fail_silently=False)
        status = CommunicationStatus.SENT
    except Exception as e:
        logger.error("Email to supplier %s failed: %s", supplier.supplier_code, e)
        status = CommunicationStatus.FAILED
        metadata['error'] = str(e)

    return log_communication(
        supplier=supplier,
        communication_type=CommunicationType.EMAIL,
        direction=CommunicationDirection.OUTBOUND,
        subject=subject,
        content=content,
        recipient_email=supplier.email,
        sender_email=sender,
        status=status,
        purchase_order=purchase_order,
        quotation=quotation,
        metadata=metadata,
        created_by=user,
    )


def get_communications(
    *,
    supplier_id=None,
    purchase_order_id=None,
    quotation_id=None,
    communication_type: Optional[str] = None
) -> QuerySet:
    queryset = SupplierCommunication.objects.select_related('supplier', 'purchase_order', 'quotation', 'created_by')
    if supplier_id:
        queryset = queryset.filter(supplier_id=supplier_id)
    if purchase_order_id:
        queryset = queryset.filter(purchase_order_id=purchase_order_id)
    if quotation_id:
        queryset = queryset.filter(quotation_id=quotation_id)
    if communication_type:
        queryset = queryset.filter(communication_type=communication_type)
    return queryset.order_by('-created_at')


def get_active_templates(template_type: Optional[str] = None) -> QuerySet:
    queryset = CommunicationTemplate.objects.filter(is_active=True)
    if template_type:
        queryset = queryset.filter(template_type=template_type)
    return queryset
