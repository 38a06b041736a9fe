"""Domain-specific exceptions for procurement services."""


class ProcurementServiceError(Exception):
    """Base exception for procurement services."""
    pass


class SupplierNotFoundError(ProcurementServiceError):
    """Raised when a supplier does not exist."""
    pass


class DuplicateSupplierError(ProcurementServiceError):
    """Raised when a supplier code is already taken."""
    pass


class InactiveSupplierError(ProcurementServiceError):
    """Raised when ordering from an inactive supplier."""
    pass


class PurchaseOrderNotFoundError(ProcurementServiceError):
    """Raised when a purchase order does not exist."""
    pass


class InvalidPOStatusTransitionError(ProcurementServiceError):
    """Raised when a purchase order cannot move to the requested status."""
    pass


class PurchaseOrderNotEditableError(ProcurementServiceError):
    """Raised when editing a PO that is past draft / pending approval."""
    pass


class EmptyPurchaseOrderError(ProcurementServiceError):
    """Raised when a purchase order has no items."""
    pass


class ApprovalPermissionError(ProcurementServiceError):
    """Raised when the user's role cannot approve the purchase order."""
    pass


class CancellationReasonRequiredError(ProcurementServiceError):
    """Raised when cancelling without a reason."""
    pass


class InvalidReceiptError(ProcurementServiceError):
    """Raised when a receipt quantity or item is invalid."""
    pass


class QuotationNotFoundError(ProcurementServiceError):
    """Raised when a quotation or quotation request does not exist."""
    pass


class QuotationNotAcceptableError(ProcurementServiceError):
    """Raised when accepting an expired, rejected or out-of-date quotation."""
    pass


class AlreadyConvertedError(ProcurementServiceError):
    """Raised when a quotation has already been converted to a PO."""
    pass


class EmailDeliveryError(ProcurementServiceError):
    """Raised when a supplier has no email address to send to."""
    pass


class InvalidDocumentError(ProcurementServiceError):
    """Raised when an uploaded document is too large or unlinked."""
    pass
