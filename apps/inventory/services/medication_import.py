"""Medication import/export (CSV and XLSX)."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Tuple

import pandas as pd
from django.db import transaction

from apps.analytics.exports import render_export
from apps.clinic.models import PriceTier
from apps.inventory.models import Medication, MovementType, AdjustmentReason
from .exceptions import ImportFileError, NoPriceTiersError
from .medication_management import create_medication, set_medication_pricing
from .stock_management import record_stock_movement

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    ('name', 'Name'),
    ('generic_name', 'Generic Name'),
    ('category', 'Category'),
    ('unit_of_measure', 'Unit of Measure'),
    ('cost_price', 'Cost Price'),
    ('stock_level', 'Stock Level'),
    ('reorder_level', 'Reorder Level'),
    ('remarks', 'Remarks'),
]

HEADER_ALIASES = {
    'name': 'name',
    'medication': 'name',
    'generic name': 'generic_name',
    'category': 'category',
    'unit of measure': 'unit_of_measure',
    'unit of measure (uom)': 'unit_of_measure',
    'uom': 'unit_of_measure',
    'cost price': 'cost_price',
    'cost price (rm)': 'cost_price',
    'stock level': 'stock_level',
    'reorder level': 'reorder_level',
    'remarks': 'remarks',
}

NUMERIC_FIELDS = ('cost_price', 'stock_level', 'reorder_level')


def medication_export_rows() -> Tuple[List[str], List[str], List[dict]]:
    """
    Rows for the medication export, one ``{tier} Price`` column per tier.

    Returns:
        (columns, headers, rows)
    """
    tiers = list(PriceTier.objects.order_by('tier_name'))
    columns = [key for key, _ in EXPORT_COLUMNS]
    headers = [label for _, label in EXPORT_COLUMNS]
    for tier in tiers:
        columns.append(f"tier:{tier.id}")
        headers.append(f"{tier.tier_name} Price")

    rows = []
    medications = Medication.objects.filter(is_active=True).prefetch_related('tier_prices')
    for medication in medications:
        row = {key: getattr(medication, key) for key, _ in EXPORT_COLUMNS}
        prices = {p.tier_id: p.price for p in medication.tier_prices.all()}
        for tier in tiers:
            row[f"tier:{tier.id}"] = prices.get(tier.id, Decimal('0.00'))
        rows.append(row)
    return columns, headers, rows


def export_medications(*, fmt: str = 'csv'):
    """Download response with every active medication as CSV or XLSX."""
    columns, headers, rows = medication_export_rows()
    return render_export(name='medications', fmt=fmt, columns=columns, rows=rows, headers=headers)


def read_import_file(file) -> pd.DataFrame:
    """Load an uploaded CSV or XLSX file as a frame of strings."""
    name = (getattr(file, 'name', '') or '').lower()
    try:
        if name.endswith('.csv'):
            frame = pd.read_csv(file, dtype=str, keep_default_na=False)
        elif name.endswith('.xlsx') or name.endswith('.xls'):
            frame = pd.read_excel(file, dtype=str)
        else:
            raise ImportFileError("Import file must be .csv or .xlsx")
    except ImportFileError:
        raise
    except Exception as e:
        raise ImportFileError(f"Could not read import file: {e}")

    frame = frame.fillna('')
    frame.columns = [str(c).strip() for c in frame.columns]
    frame = frame.drop(columns=[c for c in frame.columns if c.startswith('Unnamed')], errors='ignore')
    return frame


def _map_columns(columns, tiers: Dict[str, PriceTier]) -> Dict[str, str]:
    mapping = {}
    for column in columns:
        key = column.lower()
        if key in HEADER_ALIASES:
            mapping[column] = HEADER_ALIASES[key]
        elif key.endswith(' price') and key[:-len(' price')] in tiers:
            mapping[column] = f"tier:{tiers[key[:-len(' price')]].id}"
    return mapping


def _parse_number(value: str, integer: bool = False):
    value = str(value).strip().replace(',', '')
    if value == '':
        return None
    number = Decimal(value)
    if number < 0:
        raise InvalidOperation
    if integer:
        return int(number)
    return number


def validate_import_rows(frame: pd.DataFrame, mapping: Dict[str, str]) -> Tuple[List[dict], List[dict]]:
    """
    Map and validate rows.

    Returns:
        (parsed_rows, errors); errors carry the spreadsheet row number
        (header is row 1), column and message
    """
    parsed, errors = [], []
    for index, raw in enumerate(frame.to_dict(orient='records')):
        row_number = index + 2
        row = {'_row': row_number, 'pricing': {}}
        for column, field in mapping.items():
            value = raw.get(column, '')
            if field.startswith('tier:'):
                if str(value).strip() == '':
                    continue
                try:
                    row['pricing'][field[len('tier:'):]] = _parse_number(value)
                except (InvalidOperation, ValueError):
                    errors.append({'row': row_number, 'column': column, 'error': 'Must be a valid number'})
                continue
            if field in NUMERIC_FIELDS:
                try:
                    row[field] = _parse_number(value, integer=field != 'cost_price')
                except (InvalidOperation, ValueError):
                    errors.append({'row': row_number, 'column': column, 'error': 'Must be a valid number'})
                continue
            row[field] = str(value).strip()

        if not row.get('name'):
            errors.append({'row': row_number, 'column': 'name', 'error': 'Name is required'})
        parsed.append(row)
    return parsed, errors


@transaction.atomic
def import_medications(*, file, user=None) -> dict:
    """
    Create or update medications from a CSV/XLSX file.

    Existing medications are matched by case-insensitive name. A changed
    stock level on an existing medication is recorded as a cycle-count
    adjustment; stock on a new medication is recorded as opening stock.
    Nothing is written when any row fails validation.

    Returns:
        dict with created, updated and errors
    """
    if not PriceTier.objects.exists():
        raise NoPriceTiersError("Create price tiers first")

    frame = read_import_file(file)
    tiers = {t.tier_name.lower(): t for t in PriceTier.objects.all()}
    mapping = _map_columns(frame.columns, tiers)
    if 'name' not in mapping.values():
        raise ImportFileError("Import file must have a 'Name' column")

    rows, errors = validate_import_rows(frame, mapping)
    if errors:
        return {'created': 0, 'updated': 0, 'errors': errors}

    created = updated = 0
    for row in rows:
        existing = Medication.objects.select_for_update().filter(name__iexact=row['name']).first()
        pricing = row.pop('pricing')
        row.pop('_row')
        stock_level = row.pop('stock_level', None)

        if existing is None:
            fields = {k: v for k, v in row.items() if v is not None}
            create_medication(
                pricing=pricing,
                opening_stock=stock_level or 0,
                created_by=user,
                **fields,
            )
            created += 1
            continue

        changed = ['is_active', 'updated_at']
        for field, value in row.items():
            if value is not None and value != '':
                setattr(existing, field, value)
                changed.append(field)
        existing.is_active = True
        existing.save(update_fields=changed)
        if pricing:
            set_medication_pricing(medication=existing, prices=pricing)
        if stock_level is not None and stock_level != existing.stock_level:
            record_stock_movement(
                medication_id=existing.id,
                movement_type=MovementType.ADJUSTMENT,
                quantity=stock_level - existing.stock_level,
                reason='Imported stock level',
                reason_code=AdjustmentReason.CYCLE_COUNT,
                created_by=user,
            )
        updated += 1

    logger.info("Medication import: %d created, %d updated", created, updated)
    return {'created': created, 'updated': updated, 'errors': []}
