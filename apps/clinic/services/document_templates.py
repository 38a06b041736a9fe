"""Document template rendering with smart fields."""

import re
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import transaction

from apps.clinic.models import DocumentTemplate
from .exceptions import InvalidPriceRangeError


SMART_FIELDS = [
    'patient_name',
    'doctor_name',
    'visit_date',
    'identification',
    'age',
    'time_in',
    'diagnosis',
    'gender',
    'phone',
    'address',
    'visit_time',
    'mc_number',
    'mc_days',
]

PLACEHOLDER_PATTERN = re.compile(r'\{\{\s*(\w+)\s*\}\}')


def list_template_fields(content: str) -> List[str]:
    """Return the distinct placeholders used in ``content``, in order of appearance."""
    seen = []
    for name in PLACEHOLDER_PATTERN.findall(content or ''):
        if name not in seen:
            seen.append(name)
    return seen


def render_template_text(text: str, context: Dict[str, object]) -> str:
    """Replace ``{{key}}`` placeholders; unknown keys are left as-is."""
    def replace(match):
        key = match.group(1)
        if key in context and context[key] is not None:
            return str(context[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, text or '')


def render_document_template(template: DocumentTemplate, context: Dict[str, object]) -> dict:
    """
    Render a document template for printing.

    Returns:
        dict with ``content`` and the smart fields still ``missing_fields``
    """
    content = render_template_text(template.content, context)
    return {
        'template_id': template.id,
        'template_name': template.template_name,
        'content': content,
        'missing_fields': list_template_fields(content),
    }


def _check_price_range(price_from: Optional[Decimal], price_to: Optional[Decimal]) -> None:
    if price_from is not None and price_to is not None and price_from > price_to:
        raise InvalidPriceRangeError("price_from cannot be greater than price_to")


@transaction.atomic
def create_document_template(*, created_by=None, **fields) -> DocumentTemplate:
    _check_price_range(fields.get('price_from'), fields.get('price_to'))
    return DocumentTemplate.objects.create(created_by=created_by, **fields)


@transaction.atomic
def update_document_template(*, template: DocumentTemplate, **fields) -> DocumentTemplate:
    _check_price_range(
        fields.get('price_from', template.price_from),
        fields.get('price_to', template.price_to),
    )
    for field, value in fields.items():
        setattr(template, field, value)
    template.save()
    return template
