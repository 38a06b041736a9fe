"""
Tabular export helpers shared by reports and medication export.

CSV goes through the standard csv module; XLSX is built with pandas on the
openpyxl engine.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Sequence

import pandas as pd
from django.http import HttpResponse
from django.utils import timezone

from .exceptions import UnsupportedExportFormatError

EXPORT_FORMATS = ('csv', 'xlsx')

CONTENT_TYPES = {
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def export_filename(name: str, fmt: str, now: Optional[datetime] = None) -> str:
    """``{name}_{YYYY-mm-dd_HH-MM-SS}.{fmt}``"""
    now = now or timezone.localtime()
    return f"{name}_{now.strftime('%Y-%m-%d_%H-%M-%S')}.{fmt}"


def _cell(value):
    if value is None:
        return ''
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return value.isoformat()
    return value


def rows_to_csv(columns: Sequence[str], rows: List[dict], headers: Optional[Sequence[str]] = None) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers or columns)
    for row in rows:
        writer.writerow([_cell(row.get(column)) for column in columns])
    return buffer.getvalue().encode('utf-8')


def rows_to_xlsx(
    columns: Sequence[str],
    rows: List[dict],
    headers: Optional[Sequence[str]] = None,
    sheet_name: str = 'Report'
) -> bytes:
    frame = pd.DataFrame(
        [[_cell(row.get(column)) for column in columns] for row in rows],
        columns=list(headers or columns),
    )
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return buffer.getvalue()


def render_export(
    *,
    name: str,
    fmt: str,
    columns: Sequence[str],
    rows: List[dict],
    headers: Optional[Sequence[str]] = None
) -> HttpResponse:
    """
    Build a download response for tabular data.

    Args:
        name: Base filename (timestamp and extension are appended)
        fmt: 'csv' or 'xlsx'
        columns: Row keys, in output order
        rows: Row dicts
        headers: Optional header labels, defaults to the column keys

    Raises:
        UnsupportedExportFormatError: For any other format
    """
    if fmt not in EXPORT_FORMATS:
        raise UnsupportedExportFormatError(f"Unsupported export format: {fmt}")

    if fmt == 'csv':
        content = rows_to_csv(columns, rows, headers)
    else:
        content = rows_to_xlsx(columns, rows, headers, sheet_name=name)

    response = HttpResponse(content, content_type=CONTENT_TYPES[fmt])
    response['Content-Disposition'] = f'attachment; filename="{export_filename(name, fmt)}"'
    return response


def export_report(report: dict, fmt: str) -> HttpResponse:
    """Download response for a report built by ``InventoryReports.build``."""
    return render_export(
        name=report['name'],
        fmt=fmt,
        columns=report['columns'],
        rows=report['rows'],
        headers=report.get('headers'),
    )
