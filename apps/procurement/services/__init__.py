"""Services for procurement business logic."""

from .exceptions import (
    ProcurementServiceError,
    SupplierNotFoundError,
    DuplicateSupplierError,
    InactiveSupplierError,
    PurchaseOrderNotFoundError,
    InvalidPOStatusTransitionError,
    PurchaseOrderNotEditableError,
    EmptyPurchaseOrderError,
    ApprovalPermissionError,
    CancellationReasonRequiredError,
    InvalidReceiptError,
    QuotationNotFoundError,
    QuotationNotAcceptableError,
    AlreadyConvertedError,
    EmailDeliveryError,
    InvalidDocumentError,
)
from .suppliers import (
    generate_supplier_code,
    find_similar_suppliers,
    create_supplier,
    update_supplier,
    deactivate_supplier,
    get_supplier_performance,
)
from .purchase_orders import (
    ALLOWED_TRANSITIONS,
    can_transition,
    generate_po_number,
    recalculate_totals,
    find_approval_workflow,
    create_purchase_order,
    update_purchase_order,
    change_po_status,
    submit_for_approval,
    user_can_approve,
    approve_purchase_order,
    cancel_purchase_order,
    mark_as_ordered,
    update_payment_status,
    get_audit_trail,
)
from .receiving import process_po_receipt
from .communications import (
    process_template,
    template_variables,
    log_communication,
    send_supplier_email,
    get_communications,
    get_active_templates,
)
from .quotations import (
    generate_request_number,
    create_quotation_request,
    send_quotation_request,
    record_quotation,
    compare_quotations,
    accept_quotation,
    reject_quotation,
    expire_quotations,
    convert_quotation_to_po,
)
from .documents import (
    MAX_DOCUMENT_SIZE,
    document_storage_path,
    upload_document,
    delete_document,
    get_documents,
    open_document,
)

__all__ = [
    # Exceptions
    'ProcurementServiceError',
    'SupplierNotFoundError',
    'DuplicateSupplierError',
    'InactiveSupplierError',
    'PurchaseOrderNotFoundError',
    'InvalidPOStatusTransitionError',
    'PurchaseOrderNotEditableError',
    'EmptyPurchaseOrderError',
    'ApprovalPermissionError',
    'CancellationReasonRequiredError',
    'InvalidReceiptError',
    'QuotationNotFoundError',
    'QuotationNotAcceptableError',
    'AlreadyConvertedError',
    'EmailDeliveryError',
    'InvalidDocumentError',
    # Suppliers
    'generate_supplier_code',
    'find_similar_suppliers',
    'create_supplier',
    'update_supplier',
    'deactivate_supplier',
    'get_supplier_performance',
    # Purchase orders
    'ALLOWED_TRANSITIONS',
    'can_transition',
    'generate_po_number',
    'recalculate_totals',
    'find_approval_workflow',
    'create_purchase_order',
    'update_purchase_order',
    'change_po_status',
    'submit_for_approval',
    'user_can_approve',
    'approve_purchase_order',
    'cancel_purchase_order',
    'mark_as_ordered',
    'update_payment_status',
    'get_audit_trail',
    'process_po_receipt',
    # Communications
    'process_template',
    'template_variables',
    'log_communication',
    'send_supplier_email',
    'get_communications',
    'get_active_templates',
    # Quotations
    'generate_request_number',
    'create_quotation_request',
    'send_quotation_request',
    'record_quotation',
    'compare_quotations',
    'accept_quotation',
    'reject_quotation',
    'expire_quotations',
    'convert_quotation_to_po',
    # Documents
    'MAX_DOCUMENT_SIZE',
    'document_storage_path',
    'upload_document',
    'delete_document',
    'get_documents',
    'open_document',
]
