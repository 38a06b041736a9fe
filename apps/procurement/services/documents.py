"""Procurement document storage with versioning and soft delete."""

import logging
import mimetypes
import os
from typing import Optional

from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Max, QuerySet
from django.utils import timezone
from django.utils.text import get_valid_filename

from apps.procurement.models import Document, DocumentType
from .exceptions import InvalidDocumentError

logger = logging.getLogger(__name__)

MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10 MB


def document_storage_path(document_type: str, filename: str, now=None) -> str:
    """``documents/{type}/{timestamp}_{name}``"""
    now = now or timezone.now()
    name = get_valid_filename(os.path.basename(filename))
    return f"documents/{document_type}/{now.strftime('%Y%m%d%H%M%S')}_{name}"


@transaction.atomic
def upload_document(
    *,
    file,
    document_type: str,
    purchase_order=None,
    quotation=None,
    supplier=None,
    document_name: str = '',
    metadata: Optional[dict] = None,
    uploaded_by=None
) -> Document:
    """
    Store a file and record it against a PO, quotation or supplier.

    Uploading a file with the same name and links as an active document
    creates the next version.

    Raises:
        InvalidDocumentError: If the file exceeds 10 MB, the type is
            unknown or nothing is linked
    """
    if purchase_order is None and quotation is None and supplier is None:
        raise InvalidDocumentError("A document must be linked to a purchase order, quotation or supplier")
    if document_type not in DocumentType.values:
        raise InvalidDocumentError(f"Unknown document type: {document_type}")
    if file.size > MAX_DOCUMENT_SIZE:
        raise InvalidDocumentError("Documents must be 10 MB or smaller")

    name = document_name or os.path.basename(file.name)
    mime_type = (
        getattr(file, 'content_type', None) or
        mimetypes.guess_type(file.name)[0] or
        'application/octet-stream'
    )

    latest = Document.objects.filter(
        document_name=name,
        purchase_order=purchase_order,
        quotation=quotation,
        supplier=supplier,
        is_active=True,
    ).aggregate(version=Max('version'))['version']

    path = default_storage.save(document_storage_path(document_type, file.name), file)
    document = Document.objects.create(
        purchase_order=purchase_order,
        quotation=quotation,
        supplier=supplier,
        document_type=document_type,
        document_name=name,
        file_path=path,
        file_size=file.size,
        mime_type=mime_type,
        version=(latest or 0) + 1,
        metadata=metadata or {},
        uploaded_by=uploaded_by,
    )
    logger.info("Stored document %s v%d at %s", name, document.version, path)
    return document


@transaction.atomic
def delete_document(*, document: Document) -> Document:
    """Soft delete; the stored file is kept."""
    document.is_active = False
    document.save(update_fields=['is_active'])
    return document


def get_documents(
    *,
    purchase_order_id=None,
    quotation_id=None,
    supplier_id=None,
    document_type: Optional[str] = None
) -> QuerySet:
    queryset = Document.objects.filter(is_active=True).select_related('uploaded_by')
    if purchase_order_id:
        queryset = queryset.filter(purchase_order_id=purchase_order_id)
    if quotation_id:
        queryset = queryset.filter(quotation_id=quotation_id)
    if supplier_id:
        queryset = queryset.filter(supplier_id=supplier_id)
    if document_type:
        queryset = queryset.filter(document_type=document_type)
    return queryset


def open_document(document: Document):
    """Open the stored file for streaming."""
    return default_storage.open(document.file_path, 'rb')
